"""
Product catalog.

Responsibilities:
- Define the immutable Product record the pipeline ranks over.
- Load and validate catalog files (the bundled sample or an alternate JSON file).
- Provide typed accessors for the heterogeneous per-category spec values.
"""
