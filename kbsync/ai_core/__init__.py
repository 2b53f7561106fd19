# AI Core module

"""
AI Core Module - the matching brain.

Key responsibilities:
- Keyword extraction
- Scope-based scoring of content against knowledge units
- Semantic matching through an LLM (structured output)
- Scope parsing from knowledge unit markdown
"""
