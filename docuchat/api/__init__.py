"""docuchat API adapter package.

Architectural role:
- Defines the external HTTP boundary and the server entrypoint.
- Performs transport-level validation and response shaping.
- Delegates model invocation to `docuchat.llm` and conversions to `docuchat.convert`.
"""
