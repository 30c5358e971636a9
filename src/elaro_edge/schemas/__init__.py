"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .welcome import WelcomeEmailRequest, WelcomeEmailResponse

__all__ = ["WelcomeEmailRequest", "WelcomeEmailResponse"]
