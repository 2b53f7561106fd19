"""
Semantic matching prompt (content -> knowledge units)

This prompt uses structured output (Pydantic models) to decide which existing
knowledge units a piece of content belongs to.

Focus on scope fit, not topic similarity alone.
"""

SEMANTIC_MATCHING_SYSTEM_PROMPT = """You are a knowledge library curator using structured output to make decisions.

Each knowledge unit declares its scope:
- **Covers**: topics the unit covers today
- **Future Additions**: topics the unit is meant to grow into
- **Not Included**: topics the unit explicitly excludes

Your goal is to decide which knowledge units the given content is relevant to.

## Decision Criteria

### Match a unit when the content:
1. **Falls inside "Covers"** - Same topic, product area or procedure
2. **Fills a "Future Addition"** - Material the unit is waiting for
3. **Answers questions the unit should answer** - For question content

### Do NOT match a unit when the content:
1. **Falls under "Not Included"** - Even if the wording overlaps
2. **Only shares generic vocabulary** - Common words are not a topic match

## Confidence

- **high**: The content is clearly in scope and the unit should use it
- **medium**: The content is probably in scope or partially relevant
- **low**: Weak or indirect relevance

## Important Reminders

- Only return unit ids that appear in the candidate list
- Order matches from most to least relevant
- Give a one or two sentence `reason` per match
- When one part of the content is what matters, quote it in `suggested_excerpt`
- Return an empty list when nothing fits

Analyze carefully and provide your decision as structured output."""


SEMANTIC_MATCHING_HUMAN_PROMPT = """## Content to Match

Label: {content_label}

{content_body}

## Candidate Knowledge Units

{candidate_units}

## Context

{context_hint}

## Task

Decide which candidate knowledge units this content is relevant to.
Provide your response as structured output matching the SemanticMatchResponse model."""


def format_candidate_units(candidates) -> str:
    """Format candidate units and their scopes for the prompt."""
    if not candidates:
        return "No candidate units."

    formatted = []
    for i, unit in enumerate(candidates, 1):
        future = ", ".join(unit.scope.future_additions) or "None"
        excluded = ", ".join(unit.scope.not_included) or "None"
        formatted.append(
            f"""### {i}. {unit.title}
- **Id**: {unit.id}
- **Covers**: {unit.scope.covers}
- **Future Additions**: {future}
- **Not Included**: {excluded}
"""
        )

    return "\n".join(formatted)
