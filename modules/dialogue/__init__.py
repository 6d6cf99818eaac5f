"""Reply generation and conversation transcript."""
from .responder import Responder
from .transcript import Message, Transcript

__all__ = ["Responder", "Message", "Transcript"]
