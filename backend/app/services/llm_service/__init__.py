"""LLM service module.

OpenRouter chat-completions client with structured (JSON schema) outputs.

Key modules:
- llm_schemas.py: Session, wire-format and structured-output schemas
- session.py: Immutable chat session helpers
- openrouter.py: HTTP client with retry, back-off and response validation
"""
