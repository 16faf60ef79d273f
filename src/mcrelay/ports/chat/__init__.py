from .base import ChatSink, code_block, summarize

__all__ = ["ChatSink", "code_block", "summarize"]
