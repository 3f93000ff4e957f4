from twilio.twiml.voice_response import VoiceResponse

from ..ports.notifier import DeliveryPayload
from ..ports.verification_repo import DeliveryMethod

VOICE_REPEAT_PAUSE_SECONDS = 2


def format_text_message(code: str) -> str:
    return f"Your verification code is: {code}"


def _spell_digits(code: str) -> str:
    # Commas make the speech engine pause between digits.
    return ", ".join(code)


def format_voice_script(code: str, language: str = "en-US") -> str:
    """Build the TwiML read out on a verification call.

    Every digit is spoken on its own and the whole announcement is given
    twice with a pause in between.
    """
    digits = _spell_digits(code)
    response = VoiceResponse()
    response.say(f"Your verification code is, {digits}.", language=language)
    response.pause(length=VOICE_REPEAT_PAUSE_SECONDS)
    response.say(f"Once again, your verification code is, {digits}.", language=language)
    return str(response)


def format_payload(code: str, method: DeliveryMethod, language: str = "en-US") -> DeliveryPayload:
    if method == DeliveryMethod.VOICE:
        return DeliveryPayload(method=method, content=format_voice_script(code, language))
    return DeliveryPayload(method=method, content=format_text_message(code))
