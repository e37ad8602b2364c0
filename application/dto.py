"""
数据传输对象（DTO）- 应用层与 gRPC 传输层之间的数据传输
"""
from pydantic import BaseModel, Field, model_validator, ConfigDict
from typing import Optional, Dict, List

from domain.common.exceptions import DomainValidationException


# uint32 on the wire
_UINT32_MAX = 2**32 - 1


class DTOBase(BaseModel):
    model_config = ConfigDict(frozen=True)


class HelloRequestDTO(DTOBase):
    """问候请求DTO（对应 pb.hello.SayHelloRequest）"""
    name: str = ""
    phone: str = ""
    a_map: Dict[str, int] = Field(default_factory=dict)
    an_array: List[str] = Field(default_factory=list)
    # oneof a_oneof: at most one of the two is set
    maybe_string: Optional[str] = None
    maybe_int: Optional[int] = Field(None, ge=0, le=_UINT32_MAX)

    @model_validator(mode="after")
    def _check_oneof(self):
        if self.maybe_string is not None and self.maybe_int is not None:
            raise DomainValidationException(
                "maybe_string and maybe_int are mutually exclusive",
                field="a_oneof",
            )
        for key, value in self.a_map.items():
            if not 0 <= value <= _UINT32_MAX:
                raise DomainValidationException(
                    f"a_map[{key!r}] out of uint32 range",
                    field="a_map",
                )
        return self

    @property
    def oneof_case(self) -> Optional[str]:
        if self.maybe_string is not None:
            return "maybe_string"
        if self.maybe_int is not None:
            return "maybe_int"
        return None


class GreetingDTO(DTOBase):
    """问候响应DTO（对应 pb.hello.SayHelloResponse）"""
    hello: str
