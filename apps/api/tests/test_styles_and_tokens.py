import pytest
from jose import jwt

from config import settings
from services.errors import InsufficientCredits, Unauthenticated
from services.session_token import create_session_token, decode_session_token
from services.styles import (
    DEFAULT_STYLE,
    LINE_ART_INSTRUCTION,
    STYLE_PROMPTS,
    ColoringStyle,
    build_generation_prompt,
    list_styles,
    resolve_style,
)


@pytest.mark.parametrize(
    "style_key,expected",
    [
        ("storybook", ColoringStyle.STORYBOOK),
        ("Crayons", ColoringStyle.CRAYONS),
        (" bold ", ColoringStyle.BOLD),
        ("fantasy", ColoringStyle.FANTASY),
        ("watercolor", ColoringStyle.SURPRISE),
        ("", ColoringStyle.SURPRISE),
        (None, ColoringStyle.SURPRISE),
    ],
)
def test_resolve_style_falls_back_to_surprise(style_key, expected):
    assert resolve_style(style_key) == expected


def test_every_style_has_a_prompt_and_single_default():
    assert set(STYLE_PROMPTS) == set(ColoringStyle)
    defaults = [style for style in list_styles() if style["is_default"]]
    assert [style["key"] for style in defaults] == [DEFAULT_STYLE.value]


def test_generation_prompt_keeps_line_art_instruction():
    prompt = build_generation_prompt(ColoringStyle.FANTASY)
    assert prompt.startswith(STYLE_PROMPTS[ColoringStyle.FANTASY])
    assert prompt.endswith(LINE_ART_INSTRUCTION)


def test_session_token_round_trip():
    token = create_session_token("user-1", "user@example.com")["token"]
    payload = decode_session_token(token)
    assert payload["sub"] == "user-1"
    assert payload["email"] == "user@example.com"


def test_session_token_rejects_wrong_audience():
    token = jwt.encode(
        {"sub": "user-1", "aud": "anon", "role": "authenticated"},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )
    with pytest.raises(ValueError):
        decode_session_token(token)


def test_session_token_rejects_anonymous_role():
    token = jwt.encode(
        {"sub": "user-1", "aud": settings.JWT_AUDIENCE, "role": "anon"},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )
    with pytest.raises(ValueError, match="authenticated"):
        decode_session_token(token)


def test_error_payloads():
    assert Unauthenticated().to_payload() == {"error": "User not authenticated"}
    payload = InsufficientCredits().to_payload()
    assert payload["error"] == "Insufficient credits"
    assert payload["needsPayment"] is True
    assert "Purchase credits" in payload["message"]
    assert InsufficientCredits.status_code == 402
