"""
Recommendation resolution pipeline.

Responsibilities:
- Score catalog products against a free-text need with deterministic heuristics.
- Validate and sanitize the remote model's JSON shortlist.
- Sequence remote call, validation and heuristic fallback for one submission.
"""
