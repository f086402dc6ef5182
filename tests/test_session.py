"""Tests for session variants and their JSON codec."""
import orjson
import pytest
from pydantic import ValidationError as PydanticValidationError

from mykeys.session import (
    AskExpiry,
    AskExtra,
    AskName,
    AskSite,
    Idle,
    Picking,
    dump_session,
    load_session,
)


class TestTransitions:
    """Each answer moves to the next step carrying collected fields."""

    def test_full_walk(self):
        session = AskName().answer("Gmail")
        assert isinstance(session, AskSite)
        session = session.answer("gmail.com").answer("me@gmail.com").answer("pw")
        assert isinstance(session, AskExpiry)
        assert session.password == "pw"
        final = session.answer("2030-01-01")
        assert isinstance(final, AskExtra)
        assert (final.name, final.site, final.account) == ("Gmail", "gmail.com", "me@gmail.com")
        assert final.expires_at == "2030-01-01"

    def test_sessions_are_frozen(self):
        session = AskSite(name="x")
        with pytest.raises(PydanticValidationError):
            session.name = "y"


class TestCodec:
    """Tests for dump_session / load_session."""

    def test_camel_case_keys(self):
        payload = orjson.loads(dump_session(Picking(picking_ids=[3, 1, 2])))
        assert payload == {"step": "picking", "pickingIds": [3, 1, 2]}

    def test_expires_at_alias(self):
        session = AskExtra(
            name="n", site="s", account="a", password="p", expires_at="2030-01-01"
        )
        payload = orjson.loads(dump_session(session))
        assert payload["expiresAt"] == "2030-01-01"
        assert load_session(dump_session(session)) == session

    def test_load_idle(self):
        assert load_session('{"step": "idle"}') == Idle()

    def test_unknown_step_rejected(self):
        with pytest.raises(PydanticValidationError):
            load_session('{"step": "dancing"}')

    def test_missing_field_rejected(self):
        """ask_account without a site is not representable."""
        with pytest.raises(PydanticValidationError):
            load_session('{"step": "ask_account", "name": "x"}')

    def test_extra_field_rejected(self):
        with pytest.raises(PydanticValidationError):
            load_session('{"step": "ask_site", "name": "x", "password": "p"}')

    def test_empty_picking_rejected(self):
        with pytest.raises(PydanticValidationError):
            Picking(picking_ids=[])

    def test_invalid_json(self):
        with pytest.raises(ValueError):
            load_session("{not json")
