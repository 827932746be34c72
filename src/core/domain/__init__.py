"""Domain models and errors.

Why:
- Plain, strict data structures (Pydantic v2) for what travels to and from
  the controller.
- The domain knows nothing about httpx, Typer or Rich.
"""
