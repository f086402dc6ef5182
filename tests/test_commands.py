"""
Tests for chat command parsing.
"""
import pytest

from mykeys.conversation.commands import (
    AddBare,
    AddNamed,
    Cancel,
    Delete,
    Expiring,
    Help,
    ListAll,
    LongTextUsage,
    SaveLongText,
    StepInput,
    is_skip,
    parse_event,
    parse_text,
)


class TestKeywords:
    """Keyword commands, English and Chinese aliases."""

    @pytest.mark.parametrize("text", ["/help", "/start", "HELP", "帮助"])
    def test_help(self, text):
        assert parse_text(text) == Help()

    @pytest.mark.parametrize("text", ["/list", " list ", "列表"])
    def test_list(self, text):
        assert parse_text(text) == ListAll()

    @pytest.mark.parametrize("text", ["/expiring", "到期"])
    def test_expiring(self, text):
        assert parse_text(text) == Expiring()

    @pytest.mark.parametrize("text", ["/cancel", "Cancel", "取消"])
    def test_cancel(self, text):
        assert parse_text(text) == Cancel()

    def test_plain_text_is_step_input(self):
        assert parse_text("  gmail ") == StepInput("gmail")


class TestAddDelete:

    @pytest.mark.parametrize("text", ["/add", "添加", "/add   "])
    def test_bare_add(self, text):
        assert parse_text(text) == AddBare()

    def test_named_add(self):
        assert parse_text("/add My Gmail") == AddNamed("My Gmail")
        assert parse_text("添加 工商银行") == AddNamed("工商银行")

    def test_add_prefix_needs_separator(self):
        assert parse_text("/address") == StepInput("/address")

    @pytest.mark.parametrize("text", ["/del 3", "/delete 3", "删除 3"])
    def test_delete(self, text):
        assert parse_text(text) == Delete(3)

    def test_delete_without_id(self):
        assert parse_text("/del abc") == StepInput("/del abc")


class TestLongText:
    """``#save`` / ``#存`` marker parsing."""

    def test_name_and_body(self):
        cmd = parse_text("#save server key\nline one\nline two")
        assert cmd == SaveLongText(name="server key", body="line one\nline two")

    def test_chinese_marker(self):
        cmd = parse_text("#存 证书\n-----BEGIN-----")
        assert cmd == SaveLongText(name="证书", body="-----BEGIN-----")

    def test_date_suffix(self):
        cmd = parse_text("#save cert@2030-01-31\nbody")
        assert cmd == SaveLongText(name="cert", body="body", expires_at="2030-01-31")

    def test_invalid_date_suffix_dropped(self):
        cmd = parse_text("#save cert@2030-13-45\nbody")
        assert cmd == SaveLongText(name="cert", body="body", expires_at=None)

    def test_missing_body(self):
        assert parse_text("#save cert") == LongTextUsage()


class TestEvents:
    """Menu click events."""

    @pytest.mark.parametrize(
        "key, expected",
        [
            ("CMD_LIST", ListAll()),
            ("CMD_ADD", AddBare()),
            ("CMD_EXPIRING", Expiring()),
            ("CMD_HELP", Help()),
        ],
    )
    def test_click(self, key, expected):
        assert parse_event("click", key) == expected

    def test_unknown_key(self):
        assert parse_event("click", "CMD_NOPE") is None

    def test_other_event(self):
        assert parse_event("subscribe", None) is None
        assert parse_event(None, "CMD_LIST") is None


@pytest.mark.parametrize("text", ["no", "N", " skip ", "否", "跳过", "无"])
def test_skip_words(text):
    assert is_skip(text)


def test_not_skip():
    assert not is_skip("nothing")
