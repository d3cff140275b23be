# backend/linkguess/core/bson_utils.py
# ObjectId compatible Pydantic v2 + base model pour les documents Mongo (challenges, tentatives).
from __future__ import annotations

from typing import Any, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, GetCoreSchemaHandler
from pydantic.json_schema import GetJsonSchemaHandler, JsonSchemaValue
from pydantic_core import core_schema


class PyObjectId(ObjectId):
    """ObjectId utilisable dans les modèles Pydantic v2.

    Description:
        Accepte un `ObjectId` ou sa forme hexadécimale (24 caractères) et se sérialise
        en chaîne dans les réponses JSON.
    """

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: GetCoreSchemaHandler) -> core_schema.CoreSchema:
        return core_schema.json_or_python_schema(
            json_schema=core_schema.no_info_plain_validator_function(cls.validate),
            python_schema=core_schema.no_info_plain_validator_function(cls.validate),
            serialization=core_schema.plain_serializer_function_ser_schema(str),
        )

    @classmethod
    def __get_pydantic_json_schema__(cls, core_schema_obj: core_schema.CoreSchema, handler: GetJsonSchemaHandler) -> JsonSchemaValue:
        return {
            "type": "string",
            "format": "objectid",
            "pattern": "^[a-fA-F0-9]{24}$",
            "examples": ["507f1f77bcf86cd799439011"],
        }

    @classmethod
    def validate(cls, v: Any) -> ObjectId:
        """Convertir en ObjectId.

        Raises:
            ValueError: Si la valeur n'est ni un ObjectId ni une chaîne hex valide.
        """
        if isinstance(v, ObjectId):
            return v
        if isinstance(v, str) and ObjectId.is_valid(v):
            return ObjectId(v)
        raise ValueError(f"Invalid ObjectId: {v!r}")


def to_object_id(value: Any) -> ObjectId | None:
    """Conversion tolérante vers ObjectId (None si invalide)."""
    try:
        return PyObjectId.validate(value)
    except ValueError:
        return None


class MongoBaseModel(BaseModel):
    """BaseModel Pydantic pour documents Mongo.

    Description:
        Expose `_id` sous le nom `id` ; `dump_mongo` repasse par l'alias pour l'écriture.
    """
    id: Optional[PyObjectId] = Field(default=None, alias="_id")

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )


def dump_mongo(model: BaseModel, *, exclude_none: bool = True) -> dict:
    """Dump d'un modèle en document Mongo (alias `_id`, champs None exclus par défaut)."""
    return model.model_dump(by_alias=True, exclude_none=exclude_none)
