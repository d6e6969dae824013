"""LLM access package.

Architectural role:
    Normalizes provider-agnostic conversations into provider wire payloads and
    invokes the configured backends.

Module split:
    - `provider_config`: environment-driven credentials, models, and endpoints.
    - `message_types`: normalized request and content-block contracts.
    - `sanitizer`: OpenAI content-block repair.
    - `providers`: OpenAI-family and Gemini-family transport clients.
    - `service`: `converse` / `analyze` entry points.
    - `errors`: caller-visible error taxonomy.
"""
