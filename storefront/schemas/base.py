"""
Base schemas with common functionality.
"""
from pydantic import AliasChoices, AliasGenerator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def _camel_or_snake(field_name: str) -> AliasChoices:
    return AliasChoices(to_camel(field_name), field_name)


class BaseSchema(BaseModel):
    """Base schema with common functionality for all schemas"""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True
    )


class ApiSchema(BaseSchema):
    """
    Schema exchanged with the storefront frontend.

    Accepts camelCase or snake_case keys on input and always emits camelCase.
    """

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=AliasGenerator(
            validation_alias=_camel_or_snake,
            serialization_alias=to_camel,
        ),
    )
