import pytest

from application.dto import HelloRequestDTO
from application.services.greeting_service import GreetingApplicationService
from core.config import HelloSettings
from domain.common.exceptions import (
    DomainValidationException,
    NameTooLongException,
    StreamLimitExceededException,
)
from domain.greeting import Greeting, GreetingDomainService


async def _stream(*names):
    for name in names:
        yield HelloRequestDTO(name=name)


def test_greeting_text():
    assert Greeting(prefix="Hi", recipient="ann").text == "Hi, ann!"
    assert Greeting(prefix="Hi", recipient="ann", sequence=2, total=3).text == "Hi, ann! (2/3)"


def test_greeting_rejects_bad_sequence():
    with pytest.raises(ValueError):
        Greeting(prefix="Hi", recipient="ann", sequence=4, total=3)


def test_domain_resolves_recipient():
    svc = GreetingDomainService(prefix="Hello", default_name="world", max_name_length=4)
    assert svc.resolve_recipient("  bob ") == "bob"
    assert svc.resolve_recipient("") == "world"
    with pytest.raises(NameTooLongException) as ei:
        svc.resolve_recipient("abcde")
    assert ei.value.field == "name"
    assert ei.value.details == {"length": 5, "max_length": 4}


def test_domain_greet_many_zero():
    svc = GreetingDomainService(prefix="Hello", default_name="world", max_name_length=10)
    assert svc.greet_many("x", 0) == []


def test_dto_oneof_exclusive():
    with pytest.raises(DomainValidationException):
        HelloRequestDTO(maybe_string="a", maybe_int=1)
    assert HelloRequestDTO(maybe_int=0).oneof_case == "maybe_int"
    assert HelloRequestDTO().oneof_case is None


async def test_say_hello_uses_configured_prefix():
    svc = GreetingApplicationService(HelloSettings(greeting_prefix="Hey", default_name="you"))
    assert (await svc.say_hello(HelloRequestDTO(name="kim"))).hello == "Hey, kim!"
    assert (await svc.say_hello(HelloRequestDTO())).hello == "Hey, you!"


async def test_lots_of_replies_count():
    svc = GreetingApplicationService(HelloSettings(replies_per_request=2))
    replies = [g.hello async for g in svc.lots_of_replies(HelloRequestDTO(name="a"))]
    assert replies == ["Hello, a! (1/2)", "Hello, a! (2/2)"]


async def test_lots_of_greetings_zero_and_many():
    svc = GreetingApplicationService(HelloSettings())
    assert await svc.lots_of_greetings(_stream()) == []
    greetings = await svc.lots_of_greetings(_stream("a", "b"))
    assert [g.hello for g in greetings] == ["Hello, a!", "Hello, b!"]


async def test_stream_limit():
    svc = GreetingApplicationService(HelloSettings(max_stream_messages=1))
    with pytest.raises(StreamLimitExceededException):
        await svc.lots_of_greetings(_stream("a", "b"))


async def test_bidi_yields_per_request():
    svc = GreetingApplicationService(HelloSettings())
    out = [g.hello async for g in svc.bidi_hello(_stream("a", "b", "c"))]
    assert out == ["Hello, a!", "Hello, b!", "Hello, c!"]
