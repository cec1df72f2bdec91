"""Data models and schemas for the ChefGPT service.

Defines Pydantic models for request/response validation and domain objects.
All models use Pydantic v2. Request models accept both the documented field
names and the names the legacy browser UI sends (e.g. "type"/"ai" for chat
roles, "cookingLevel" for the profile skill level).
"""

from enum import Enum
from typing import Any, List, Optional, Annotated

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


class Role(str, Enum):
    """Author of a chat turn."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


# Role names sent by older clients
_ROLE_ALIASES = {
    "ai": Role.ASSISTANT,
    "bot": Role.ASSISTANT,
    "model": Role.ASSISTANT,
    "assistant": Role.ASSISTANT,
    "human": Role.USER,
    "user": Role.USER,
    "system": Role.SYSTEM,
}


class ChatTurn(BaseModel):
    """One message of a conversation.

    Text is kept verbatim (no whitespace stripping) because turns are
    replayed to the model exactly as the caller stored them.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str | int] = None
    role: Role
    text: Annotated[str, Field(validation_alias=AliasChoices("text", "content"))]
    image_reference: Annotated[
        Optional[str], Field(None, validation_alias=AliasChoices("image_reference", "imageReference"))
    ]

    @model_validator(mode="before")
    @classmethod
    def accept_type_as_role(cls, data: Any) -> Any:
        """Legacy UI stores the author under 'type' instead of 'role'."""
        if isinstance(data, dict) and "role" not in data and "type" in data:
            data = {**data, "role": data["type"]}
        return data

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, value: Any) -> Any:
        if isinstance(value, str):
            role = _ROLE_ALIASES.get(value.strip().lower())
            if role is None:
                raise ValueError(f"Unknown role '{value}': expected user, assistant or system")
            return role
        return value


class UserProfile(BaseModel):
    """Optional cook profile used to personalize the system prompt.

    Frozen: the orchestrator only reads it.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, str_strip_whitespace=True)

    age_years: Annotated[
        Optional[int],
        Field(None, ge=1, le=120, validation_alias=AliasChoices("age_years", "ageYears", "age")),
    ]
    skill_level: Annotated[
        Optional[int],
        Field(
            None,
            ge=1,
            le=7,
            validation_alias=AliasChoices("skill_level", "skillLevel", "cookingLevel"),
            description="Cooking skill ordinal (1 = Beginner ... 7 = Professional)",
        ),
    ]
    dietary_restrictions: Annotated[
        List[str],
        Field(
            default_factory=list,
            validation_alias=AliasChoices("dietary_restrictions", "dietaryRestrictions"),
        ),
    ]
    freeform_restrictions: Annotated[
        str,
        Field(
            "",
            max_length=500,
            validation_alias=AliasChoices("freeform_restrictions", "freeformRestrictions", "otherRestrictions"),
        ),
    ]
    available_appliances: Annotated[
        List[str],
        Field(
            default_factory=list,
            validation_alias=AliasChoices("available_appliances", "availableAppliances", "appliances"),
        ),
    ]
    freeform_bio: Annotated[
        str,
        Field("", max_length=2000, validation_alias=AliasChoices("freeform_bio", "freeformBio", "description")),
    ]

    @field_validator("age_years", "skill_level", mode="before")
    @classmethod
    def empty_string_is_unset(cls, value: Any) -> Any:
        """Profile forms submit '' for untouched number inputs."""
        if isinstance(value, str) and not value.strip():
            return None
        return value


class ModelMessage(BaseModel):
    """One {role, text} entry of a language-model request."""

    model_config = ConfigDict(frozen=True)

    role: Role
    text: str


class ModelRequest(BaseModel):
    """Flattened, ordered message list sent to the language model."""

    model_config = ConfigDict(frozen=True)

    messages: List[ModelMessage]

    @property
    def system_messages(self) -> List[ModelMessage]:
        return [m for m in self.messages if m.role == Role.SYSTEM]

    @property
    def final_user_message(self) -> Optional[ModelMessage]:
        if self.messages and self.messages[-1].role == Role.USER:
            return self.messages[-1]
        return None


class ChatRequest(BaseModel):
    """Request schema for POST /chat.

    The last message, when authored by the user, is the current turn; all
    earlier messages are history. An attached image is captioned and the
    caption is added as image context, unless image_only asks for the
    caption alone.
    """

    model_config = ConfigDict(populate_by_name=True)

    messages: Annotated[List[ChatTurn], Field(default_factory=list, max_length=500)]
    image_analysis: Annotated[
        Optional[str],
        Field(None, max_length=5000, validation_alias=AliasChoices("image_analysis", "imageAnalysis")),
    ]
    image_base64: Annotated[
        Optional[str],
        Field(None, validation_alias=AliasChoices("image_base64", "imageBase64", "image")),
    ]
    image_only: Annotated[
        bool, Field(False, validation_alias=AliasChoices("image_only", "imageOnly"))
    ]
    user_profile: Annotated[
        Optional[UserProfile], Field(None, validation_alias=AliasChoices("user_profile", "userProfile"))
    ]
    persona: Optional[str] = None
    analysis_type: Annotated[
        Optional[str], Field(None, validation_alias=AliasChoices("analysis_type", "analysisType"))
    ]
    company: Annotated[Optional[str], Field(None, max_length=200)]
    domain: Annotated[Optional[str], Field(None, max_length=200)]

    @model_validator(mode="after")
    def validate_has_input(self) -> "ChatRequest":
        """Ensure there is something to answer."""
        if not self.messages and not self.image_base64 and not self.analysis_type:
            raise ValueError("Either messages, an image, or an analysisType must be provided")
        if self.image_only and not self.image_base64:
            raise ValueError("imageOnly requires an image")
        return self


class ChatResponse(BaseModel):
    """Response schema for POST /chat."""

    content: str


class ImageCaptionRequest(BaseModel):
    """Request schema for POST /image-caption."""

    model_config = ConfigDict(populate_by_name=True)

    image_base64: Annotated[
        str, Field(min_length=1, validation_alias=AliasChoices("image_base64", "imageBase64", "image"))
    ]
    question: Annotated[Optional[str], Field(None, min_length=1, max_length=500)]


class ImageCaptionResponse(BaseModel):
    """Response schema for POST /image-caption."""

    caption: str


class RecipeSummary(BaseModel):
    """One Spoonacular findByIngredients result.

    Only the fields the service reads are declared; everything else the
    upstream returns (missedIngredients, usedIngredients, ...) is relayed
    untouched. Serialized with Spoonacular's camelCase names.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: int
    title: str
    image: Optional[str] = None
    used_ingredient_count: Optional[int] = None
    missed_ingredient_count: Optional[int] = None
    likes: Optional[int] = None


class RecipeLookupRequest(BaseModel):
    """Request schema for POST /recipe-lookup."""

    model_config = ConfigDict(populate_by_name=True)

    image_file: Annotated[
        Optional[str], Field(None, validation_alias=AliasChoices("image_file", "imageFile"))
    ]
    messages: Annotated[List[ChatTurn], Field(default_factory=list, max_length=500)]

    @model_validator(mode="after")
    def validate_has_input(self) -> "RecipeLookupRequest":
        if not self.image_file and not self.messages:
            raise ValueError("No imageFile or messages provided")
        return self


class RecipeLookupResponse(BaseModel):
    """Response schema for POST /recipe-lookup.

    Either ingredients + recipes, or an informational content string when
    nothing was found.
    """

    ingredients: Optional[List[str]] = None
    recipes: Optional[List[RecipeSummary]] = None
    content: Optional[str] = None


class ErrorResponse(BaseModel):
    """Structured error payload returned for 4xx/5xx responses."""

    error: str
    details: Optional[str] = None
