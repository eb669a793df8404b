from chat_gateway.core.mock_responder import ALL_UNAVAILABLE_REASON, echo_fragment, mock_response


def test_long_message_is_truncated_with_ellipsis() -> None:
    message = "x" * 250

    text = mock_response(message, "en", ALL_UNAVAILABLE_REASON)

    assert f'"{"x" * 100}..."' in text
    assert "x" * 101 not in text


def test_short_message_is_echoed_verbatim() -> None:
    assert echo_fragment("hello") == "hello"
    assert echo_fragment("y" * 100) == "y" * 100


def test_english_template() -> None:
    text = mock_response("hi", "en", "Groq not configured")

    assert text == (
        '[Mock AI - Groq not configured] I understand you said: "hi". '
        "Configure API keys for real AI responses! ✨"
    )


def test_arabic_template() -> None:
    text = mock_response("مرحبا", "ar", ALL_UNAVAILABLE_REASON)

    assert text.startswith("[رد تجريبي - All AI services unavailable]")
    assert '"مرحبا"' in text


def test_unknown_language_uses_english() -> None:
    assert mock_response("hi", "fr", "x").startswith("[Mock AI - x]")
