"""
Settings Schema.

Field definitions and validation for the ``[settings]`` table.

Key features:
- Typed fields with defaults and descriptions
- min/max bounds (values for numbers, length for strings and lists)
- choices and list item types
"""

from dataclasses import dataclass
from typing import Any


class SchemaError(Exception):
    """Raised when a field definition is invalid."""

    pass


class ValidationError(SchemaError):
    """Raised when a value fails validation."""

    pass


@dataclass
class ConfigField:
    """
    A settings field with type and constraints.

    Attributes:
        type_: Expected type of the value
        default: Default value
        description: Written as a comment into generated files
        min: Minimum value (numbers) or minimum length (str, list)
        max: Maximum value (numbers) or maximum length (str, list)
        choices: Allowed values
        item_type: Element type for list fields
    """

    type_: type
    default: Any
    description: str = ""
    min: Any = None
    max: Any = None
    choices: list[Any] | None = None
    item_type: type | None = None

    def __post_init__(self):
        if (self.min is not None or self.max is not None) and self.type_ not in (
            int,
            float,
            str,
            list,
        ):
            raise SchemaError(
                f"min/max constraints only supported for int, float, str, list. "
                f"Got {self.type_.__name__}"
            )
        if self.item_type is not None and self.type_ is not list:
            raise SchemaError("item_type is only supported for list fields")
        if self.choices is not None and self.default not in self.choices:
            raise SchemaError(
                f"Default value {self.default!r} not in choices {self.choices}"
            )
        try:
            self.validate(self.default)
        except ValidationError as e:
            raise SchemaError(f"Invalid default value: {e}") from e

    def validate(self, value: Any) -> None:
        """
        Validate a value against this field.

        Raises:
            ValidationError: If validation fails
        """
        # bool is an int subclass; keep them apart
        if not isinstance(value, self.type_) or (
            self.type_ is int and isinstance(value, bool)
        ):
            raise ValidationError(
                f"Expected type {self.type_.__name__}, got {type(value).__name__}"
            )

        if self.choices is not None and value not in self.choices:
            raise ValidationError(
                f"Value {value!r} not in allowed choices {self.choices}"
            )

        if self.type_ in (int, float):
            measured, label = value, "Value"
        elif self.type_ in (str, list):
            measured, label = len(value), "Length"
        else:
            return

        if self.min is not None and measured < self.min:
            raise ValidationError(f"{label} {measured} is less than minimum {self.min}")
        if self.max is not None and measured > self.max:
            raise ValidationError(
                f"{label} {measured} is greater than maximum {self.max}"
            )

        if self.item_type is not None:
            for item in value:
                if not isinstance(item, self.item_type):
                    raise ValidationError(
                        f"List item {item!r} is not of type {self.item_type.__name__}"
                    )


def validate_config(config: dict[str, Any], schema: dict[str, ConfigField]) -> None:
    """
    Validate a partial settings table; missing fields take their defaults.

    Raises:
        ValidationError: If a field is unknown or invalid
    """
    for key in config:
        if key not in schema:
            raise ValidationError(f"Unknown configuration field: {key}")

    for field_name, value in config.items():
        try:
            schema[field_name].validate(value)
        except ValidationError as e:
            raise ValidationError(f"Field '{field_name}': {e}") from e


def generate_default_config(schema: dict[str, ConfigField]) -> dict[str, Any]:
    """Build a settings table holding every field's default."""
    return {field_name: field.default for field_name, field in schema.items()}
