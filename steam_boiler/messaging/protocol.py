"""
Sentence Protocol
=================

Text framing for mailbox messages, used for scenario traces and for
logging the messages exchanged each cycle.

Format:
    $<KIND>[,<param>...]*XX

    XX is the XOR checksum of everything between '$' and '*', as two
    hex digits. Booleans are sent as 0/1, pump indices as integers,
    values as decimals, modes by name.

Examples:
    $LEVEL,500*4F
    $PUMP_STATE,2,1*13
    $MODE,NORMAL*3C
"""

from typing import Iterable, List

from .mailbox import Mailbox, Message, MessageKind, Mode


class ProtocolError(ValueError):
    """Raised when a sentence cannot be decoded."""


def compute_checksum(payload: str) -> int:
    """Compute XOR checksum of payload."""
    checksum = 0
    for c in payload:
        checksum ^= ord(c)
    return checksum


def _format_value(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def encode_message(message: Message) -> str:
    """Encode one message as a framed sentence."""
    parts = [message.kind.label]
    for letter in message.kind.signature:
        if letter == 'n':
            parts.append(str(message.index))
        elif letter == 'v':
            parts.append(_format_value(message.value))
        elif letter == 'b':
            parts.append('1' if message.flag else '0')
        elif letter == 'm':
            parts.append(message.mode.value)
    payload = ','.join(parts)
    return f"${payload}*{compute_checksum(payload):02X}"


def decode_message(sentence: str) -> Message:
    """
    Decode one framed sentence.

    Raises:
        ProtocolError: bad framing, checksum, kind or parameters
    """
    sentence = sentence.strip()
    if not sentence.startswith('$'):
        raise ProtocolError(f"Missing '$' start: {sentence!r}")
    if '*' not in sentence:
        raise ProtocolError(f"Missing checksum: {sentence!r}")

    payload, checksum_str = sentence[1:].rsplit('*', 1)
    try:
        expected_checksum = int(checksum_str, 16)
    except ValueError:
        raise ProtocolError(f"Invalid checksum field: {checksum_str!r}") from None
    actual_checksum = compute_checksum(payload)
    if expected_checksum != actual_checksum:
        raise ProtocolError(
            f"Checksum mismatch: expected {expected_checksum:02X}, got {actual_checksum:02X}"
        )

    parts = payload.split(',')
    try:
        kind = MessageKind.from_label(parts[0])
    except KeyError:
        raise ProtocolError(f"Unknown message kind: {parts[0]!r}") from None

    params = parts[1:]
    if len(params) != len(kind.signature):
        raise ProtocolError(
            f"{kind.label} takes {len(kind.signature)} parameter(s), got {len(params)}"
        )

    fields = {}
    try:
        for letter, raw in zip(kind.signature, params):
            if letter == 'n':
                fields['index'] = int(raw)
            elif letter == 'v':
                fields['value'] = float(raw)
            elif letter == 'b':
                if raw not in ('0', '1'):
                    raise ValueError(f"flag must be 0 or 1, got {raw!r}")
                fields['flag'] = raw == '1'
            elif letter == 'm':
                fields['mode'] = Mode(raw)
    except ValueError as e:
        raise ProtocolError(f"Bad {kind.label} parameter: {e}") from None

    return Message(kind, **fields)


def encode_mailbox(mailbox: Mailbox) -> List[str]:
    """Encode every message of a mailbox, in order."""
    return [encode_message(m) for m in mailbox]


def decode_mailbox(sentences: Iterable[str]) -> Mailbox:
    """Build a mailbox from sentences. Blank lines are skipped."""
    mailbox = Mailbox()
    for sentence in sentences:
        if sentence.strip():
            mailbox.send(decode_message(sentence))
    return mailbox
