"""
Messaging
=========

Mailbox of typed signals exchanged with the physical units, and the
sentence framing used to store and replay them.
"""

from .mailbox import (
    Mailbox,
    Message,
    MessageKind,
    Mode,
)

from .protocol import (
    ProtocolError,
    encode_message,
    decode_message,
    encode_mailbox,
    decode_mailbox,
)

__all__ = [
    'Mailbox',
    'Message',
    'MessageKind',
    'Mode',
    'ProtocolError',
    'encode_message',
    'decode_message',
    'encode_mailbox',
    'decode_mailbox',
]
