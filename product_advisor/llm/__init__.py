"""
LLM integration layer.

Responsibilities:
- Manage provider configuration and credentials.
- Build the advisor prompt from the user query and the product catalog.
- Send exactly one generation request and return the raw model text.
- Report missing credentials and failed HTTP calls as typed errors.
"""
