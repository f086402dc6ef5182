"""
Conversation sessions — one closed variant per dialogue step.

Each variant carries exactly the fields collected so far, so a session in
``ask_password`` cannot exist without a name, site and account. Sessions are
serialized with orjson using camelCase keys (``expiresAt``, ``pickingIds``).
"""
from typing import Annotated, Literal, Optional, Union

import orjson
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


class _SessionModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
    )


class Idle(_SessionModel):
    step: Literal["idle"] = "idle"


class AskName(_SessionModel):
    step: Literal["ask_name"] = "ask_name"

    def answer(self, name: str) -> "AskSite":
        return AskSite(name=name)


class AskSite(_SessionModel):
    step: Literal["ask_site"] = "ask_site"
    name: str

    def answer(self, site: str) -> "AskAccount":
        return AskAccount(name=self.name, site=site)


class AskAccount(_SessionModel):
    step: Literal["ask_account"] = "ask_account"
    name: str
    site: str

    def answer(self, account: str) -> "AskPassword":
        return AskPassword(name=self.name, site=self.site, account=account)


class AskPassword(_SessionModel):
    step: Literal["ask_password"] = "ask_password"
    name: str
    site: str
    account: str

    def answer(self, password: str) -> "AskExpiry":
        return AskExpiry(
            name=self.name, site=self.site, account=self.account,
            password=password,
        )


class AskExpiry(_SessionModel):
    step: Literal["ask_expiry"] = "ask_expiry"
    name: str
    site: str
    account: str
    password: str

    def answer(self, expires_at: Optional[str]) -> "AskExtra":
        return AskExtra(
            name=self.name, site=self.site, account=self.account,
            password=self.password, expires_at=expires_at,
        )


class AskExtra(_SessionModel):
    step: Literal["ask_extra"] = "ask_extra"
    name: str
    site: str
    account: str
    password: str
    expires_at: Optional[str] = None


class Picking(_SessionModel):
    step: Literal["picking"] = "picking"
    picking_ids: list[int] = Field(min_length=1)


Session = Annotated[
    Union[Idle, AskName, AskSite, AskAccount, AskPassword, AskExpiry, AskExtra, Picking],
    Field(discriminator="step"),
]

_adapter: TypeAdapter = TypeAdapter(Session)


def dump_session(session: Session) -> str:
    """Serialize a session to its JSON form."""
    return orjson.dumps(session.model_dump(by_alias=True)).decode("utf-8")


def load_session(payload: str) -> Session:
    """Parse a JSON session payload.

    Raises:
        orjson.JSONDecodeError: Payload is not JSON.
        pydantic.ValidationError: Unknown step or fields invalid for it.
    """
    return _adapter.validate_python(orjson.loads(payload))
