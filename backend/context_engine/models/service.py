"""
Service model.

A sellable service or combo in a company's catalog.
Mapped to Cosmos DB 'services' container with partition key /company_id.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class Service(BaseModel):
    """
    Service entity model.

    Attributes:
        id: Unique service identifier
        company_id: Owning company (partition key)
        name: Display name shown to customers
        category: Catalog category (optional)
        base_price: Base price in BRL (cannot be negative)
        duration: Expected duration in minutes (optional)
        description: Free-text description (optional)
        is_active: Whether the service is currently offered
    """

    id: str = Field(..., description="Unique service identifier")
    company_id: str = Field(..., description="Owning company (partition key)")
    name: str = Field(..., min_length=1, max_length=200, description="Display name")
    category: Optional[str] = Field(None, description="Catalog category")
    base_price: float = Field(..., ge=0.0, description="Base price in BRL")
    duration: Optional[int] = Field(None, description="Expected duration in minutes")
    description: Optional[str] = Field(None, description="Free-text description")
    is_active: bool = Field(True, description="Whether the service is currently offered")

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        """Validate name is not empty or whitespace only."""
        if not v.strip():
            raise ValueError("name cannot be empty or whitespace")
        return v.strip()

    @property
    def formatted_price(self) -> str:
        """Price in the Brazilian display format, e.g. 'R$ 150,00'."""
        return f"R$ {self.base_price:.2f}".replace(".", ",")
