from .base import BackendError, CompletionBackend
from .openai_compat import OpenAICompatibleBackend

__all__ = ["BackendError", "CompletionBackend", "OpenAICompatibleBackend"]
