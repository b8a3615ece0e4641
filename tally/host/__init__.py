"""In-process host: transactional command execution over a KV store."""

from .local import LocalHost, MessageInfo

__all__ = ["LocalHost", "MessageInfo"]
