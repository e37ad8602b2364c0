"""
配置文件 - 项目配置管理
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field, field_validator
from typing import Optional


class GrpcTlsSettings(BaseModel):
    enabled: bool = False
    cert: Optional[str] = None
    key: Optional[str] = None
    ca: Optional[str] = None


class GrpcSettings(BaseModel):
    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = 50051
    # This maps to GRPC option grpc.max_concurrent_streams
    max_concurrent_streams: int = 100
    # Seconds granted to in-flight calls on shutdown (None = cancel immediately)
    grace_period: Optional[float] = 5.0
    tls: GrpcTlsSettings = Field(default_factory=GrpcTlsSettings)


class HelloSettings(BaseModel):
    greeting_prefix: str = "Hello"
    default_name: str = "world"
    max_name_length: int = 256
    # Number of replies streamed back by LotsOfReplies
    replies_per_request: int = 3
    # Upper bound of inbound messages accepted on a single client/bidi stream
    max_stream_messages: int = 1000

    @field_validator("replies_per_request", "max_stream_messages", "max_name_length")
    @classmethod
    def _non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v


class Settings(BaseSettings):
    """项目配置"""

    # 基础配置
    PROJECT_NAME: str = "pb.hello HelloWorld"
    VERSION: str = "1.0.0"
    DEBUG: bool = True
    ENVIRONMENT: str = "development"

    # gRPC settings
    grpc: GrpcSettings = Field(default_factory=GrpcSettings)

    # 问候业务配置
    hello: HelloSettings = Field(default_factory=HelloSettings)

    # pydantic-settings v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )


settings = Settings()
