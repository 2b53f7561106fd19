from kbsync.ai_core.parsing.scope_parser import parse_scope_markdown, sanitize_scope

__all__ = ["parse_scope_markdown", "sanitize_scope"]
