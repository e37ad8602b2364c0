from .entity import Greeting
from .service import GreetingDomainService

__all__ = ["Greeting", "GreetingDomainService"]
