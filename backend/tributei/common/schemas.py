from pydantic import BaseModel, ConfigDict


class AppBaseModel(BaseModel):
    """
    Global base model for the application.
    Centralizes Pydantic configuration (stripping, assignment validation, ORM mode).

    Not strict: catalog and invoice data arrive in mixed encodings
    (numbers as strings, Decimals from Numeric columns) and are coerced
    at the model boundary.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,  # Auto-strip whitespace from strings
        validate_assignment=True,   # Validate values even when setting attributes after creation
        from_attributes=True,       # Enable ORM mode (SQLAlchemy -> Pydantic)
        frozen=False                # Allow mutation (default)
    )


class FrozenModel(AppBaseModel):
    """Immutable value object (computation results)."""
    model_config = ConfigDict(frozen=True)
