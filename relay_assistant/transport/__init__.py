from relay_assistant.transport.telegram import (
    MessagingTransport,
    TelegramClient,
    TransportError,
)

__all__ = ["MessagingTransport", "TelegramClient", "TransportError"]
