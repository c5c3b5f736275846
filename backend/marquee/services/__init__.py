"""
Services Layer

Business logic shared by the routes:
- Accept domain inputs (sessions, users, ids)
- Return domain outputs (models, dataclasses, dicts)
- Do NOT depend on HTTP request/response objects
- Commit only where the operation owns its transaction
"""
