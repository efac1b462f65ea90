"""
EShop - Shared Request Schema Types
====================================
Reusable pydantic field types for request bodies.
"""

from typing import Annotated

from pydantic import AfterValidator, EmailStr

# Stored and looked up lowercased
Email = Annotated[EmailStr, AfterValidator(str.lower)]
