"""Request orchestration for the ChefGPT service.

ChatOrchestrator turns one client request into one reply. It owns no
state between requests: every collaborator is injected and read-only.

Chat flow:
1. Resolve the persona (unknown name -> InvalidInput)
2. Split messages into history and the current user turn
3. Caption an attached image (or use the caller's pre-computed analysis)
4. Detect ingredients in the current turn
5. Compose the ModelRequest (system -> history -> final user message)
6. Call the language model through RetryingClient
7. Extract the first candidate text (fallback text if absent)

Usage:
    from chefgpt.agents.orchestrator import initialize_orchestrator

    orchestrator = initialize_orchestrator()
    response = await orchestrator.handle_chat(ChatRequest(messages=[...]))
"""

from typing import Any, Mapping, Optional, Protocol, Sequence

from pydantic import ValidationError

from chefgpt.agents.ingredients import extract_ingredients, split_caption_ingredients
from chefgpt.clients.gemini import GeminiChatModel, first_candidate_text
from chefgpt.clients.spoonacular import SpoonacularClient
from chefgpt.clients.vision import build_captioner
from chefgpt.models.models import (
    ChatRequest,
    ChatResponse,
    ChatTurn,
    ImageCaptionRequest,
    ImageCaptionResponse,
    ModelRequest,
    RecipeLookupRequest,
    RecipeLookupResponse,
    RecipeSummary,
    Role,
)
from chefgpt.prompts.composer import compose
from chefgpt.prompts.prompts import (
    IMAGE_ONLY_PROMPT,
    INGREDIENTS_QUESTION,
    NO_CAPTION_FALLBACK,
    NO_IMAGE_INGREDIENTS,
    NO_MESSAGE_INGREDIENTS,
    NO_RECIPES_FOUND,
    NO_REPLY_FALLBACK,
    PERSONAS,
    Persona,
)
from chefgpt.utils.config import Config, config
from chefgpt.utils.errors import InvalidInput, MalformedResponse
from chefgpt.utils.logger import logger
from chefgpt.utils.retry import RetryingClient


class ChatModel(Protocol):
    async def generate(self, request: ModelRequest) -> Any: ...


class Captioner(Protocol):
    async def caption(self, image_base64: str, question: Optional[str] = None) -> str: ...


class RecipeSearch(Protocol):
    async def find_by_ingredients(self, ingredients: Sequence[str]) -> list[dict[str, Any]]: ...


class ChatOrchestrator:
    """Top-level handler for chat, image caption and recipe lookup requests."""

    def __init__(
        self,
        chat_model: ChatModel,
        captioner: Captioner,
        recipe_search: RecipeSearch,
        retrying_client: Optional[RetryingClient] = None,
        personas: Mapping[str, Persona] = PERSONAS,
        default_persona: str = "chef",
        max_history: int = 20,
    ) -> None:
        """Initialize ChatOrchestrator.

        Args:
            chat_model: Language model client (exactly one call per generate()).
            captioner: Vision client used for image analysis.
            recipe_search: Recipe lookup client.
            retrying_client: Retry wrapper for the chat-completion call.
            personas: Available personas by name.
            default_persona: Persona used when a request names none.
            max_history: Keep only the last N prior turns. 0 disables the bound.
        """
        self.chat_model = chat_model
        self.captioner = captioner
        self.recipe_search = recipe_search
        self.retrying_client = retrying_client or RetryingClient()
        self.personas = personas
        self.default_persona = default_persona
        self.max_history = max_history

    def resolve_persona(self, name: Optional[str]) -> Persona:
        """Return the named persona, or the default one when name is empty.

        Raises:
            InvalidInput: If no persona has that name.
        """
        key = (name or self.default_persona).strip().lower()
        persona = self.personas.get(key)
        if persona is None:
            raise InvalidInput(f"Unknown persona '{name}'. Available: {', '.join(sorted(self.personas))}")
        return persona

    def split_turns(self, request: ChatRequest, persona: Persona) -> tuple[list[ChatTurn], Optional[str]]:
        """Separate prior turns from the text of the current turn.

        With an analysis request for a persona that defines analysis prompts,
        the rendered analysis prompt is the current turn and every message is
        history. Otherwise the last message is the current turn when it was
        written by the user and has text.

        Returns:
            (history, current_text). current_text is None when there is no
            usable current turn.
        """
        messages = list(request.messages)

        if request.analysis_type and persona.analysis_prompts:
            prompt = persona.render_analysis_prompt(request.analysis_type, request.company, request.domain)
            return messages, prompt

        if messages and messages[-1].role == Role.USER and messages[-1].text.strip():
            return messages[:-1], messages[-1].text

        return messages, None

    def bound_history(self, history: Sequence[ChatTurn]) -> list[ChatTurn]:
        if self.max_history > 0 and len(history) > self.max_history:
            logger.debug(f"Dropping {len(history) - self.max_history} oldest turn(s) from history")
            return list(history[-self.max_history:])
        return list(history)

    def build_model_request(
        self,
        persona: Persona,
        request: ChatRequest,
        image_analysis: Optional[str] = None,
    ) -> ModelRequest:
        """Compose the language-model request for a chat turn (no I/O).

        Raises:
            InvalidInput: If the request has no usable current turn and no image context.
        """
        history, user_text = self.split_turns(request, persona)
        is_analysis = bool(request.analysis_type and persona.analysis_prompts)

        ingredients: list[str] = []
        if user_text is None:
            if not image_analysis:
                raise InvalidInput("No user message to answer")
            user_text = IMAGE_ONLY_PROMPT
        elif not is_analysis:
            ingredients = extract_ingredients(user_text)

        if ingredients:
            logger.info(f"Recipe request detected with ingredients: {', '.join(ingredients)}")

        return compose(
            persona=persona,
            history=self.bound_history(history),
            user_text=user_text,
            user_profile=request.user_profile,
            image_analysis=image_analysis,
            ingredients=ingredients,
        )

    async def _caption(self, image_base64: str, question: Optional[str] = None) -> Optional[str]:
        """Caption an image; None when the upstream answered without text."""
        try:
            return await self.captioner.caption(image_base64, question)
        except MalformedResponse as e:
            logger.warning(f"Image analysis returned no answer: {e}")
            return None

    async def handle_chat(self, request: ChatRequest) -> ChatResponse:
        """Answer one chat turn.

        Raises:
            InvalidInput: Unknown persona, unusable image, or nothing to answer.
            ConfigError: A credential needed by this request is missing.
            UpstreamError: An upstream failed (chat completion after retries).
        """
        persona = self.resolve_persona(request.persona)

        if request.image_only and request.image_base64:
            logger.info("Image-only request, returning caption without chat completion")
            caption = await self._caption(request.image_base64)
            return ChatResponse(content=caption or NO_CAPTION_FALLBACK)

        # Fail before any upstream call when there is nothing to answer
        _, user_text = self.split_turns(request, persona)
        if user_text is None and not (request.image_analysis or request.image_base64):
            raise InvalidInput("No user message to answer")

        image_analysis = request.image_analysis
        if not image_analysis and request.image_base64:
            image_analysis = await self._caption(request.image_base64)
            if image_analysis:
                logger.info("Image analysis added to prompt")

        model_request = self.build_model_request(persona, request, image_analysis)
        logger.info(
            f"Chat turn for persona '{persona.name}': {len(model_request.messages)} message(s) sent to the model"
        )

        response = await self.retrying_client.invoke(
            lambda: self.chat_model.generate(model_request),
            operation="Chat completion",
        )

        try:
            content = first_candidate_text(response)
        except MalformedResponse as e:
            logger.warning(f"Chat completion returned no text: {e}")
            content = NO_REPLY_FALLBACK

        return ChatResponse(content=content)

    async def handle_image_caption(self, request: ImageCaptionRequest) -> ImageCaptionResponse:
        """Caption one image (single captioner call, no retries)."""
        caption = await self._caption(request.image_base64, request.question)
        return ImageCaptionResponse(caption=caption or NO_CAPTION_FALLBACK)

    async def handle_recipe_lookup(self, request: RecipeLookupRequest) -> RecipeLookupResponse:
        """Find recipes for the ingredients in an image or the last message.

        Returns:
            {ingredients, recipes} on success, or {content} with an
            informational message when no ingredients or recipes were found.

        Raises:
            InvalidInput: If the request has neither an image nor messages.
        """
        if request.image_file:
            answer = await self._caption(request.image_file, INGREDIENTS_QUESTION)
            ingredients = split_caption_ingredients(answer or "")
            if not ingredients:
                return RecipeLookupResponse(content=NO_IMAGE_INGREDIENTS)
        elif request.messages:
            ingredients = extract_ingredients(request.messages[-1].text)
            if not ingredients:
                return RecipeLookupResponse(content=NO_MESSAGE_INGREDIENTS)
        else:
            raise InvalidInput("No imageFile or messages provided")

        logger.info(f"Looking up recipes for: {', '.join(ingredients)}")
        try:
            results = await self.recipe_search.find_by_ingredients(ingredients)
            recipes = [RecipeSummary.model_validate(item) for item in results]
        except MalformedResponse as e:
            logger.warning(f"Recipe search returned an unusable body: {e}")
            return RecipeLookupResponse(content=NO_RECIPES_FOUND)
        except ValidationError as e:
            logger.warning(f"Unexpected recipe format from Spoonacular: {e.error_count()} error(s)")
            return RecipeLookupResponse(content=NO_RECIPES_FOUND)

        if not recipes:
            return RecipeLookupResponse(content=NO_RECIPES_FOUND)

        return RecipeLookupResponse(ingredients=ingredients, recipes=recipes)


def initialize_orchestrator(settings: Optional[Config] = None) -> ChatOrchestrator:
    """Wire a ChatOrchestrator from configuration.

    Credentials are not checked here; each client checks its own key when a
    request needs it, so the service starts even with keys missing.

    Args:
        settings: Configuration to use (default: module-level config).
    """
    settings = settings or config
    logger.info("=== Initializing ChefGPT orchestrator ===")

    chat_model = GeminiChatModel(
        api_key=settings.GEMINI_API_KEY,
        model=settings.GEMINI_MODEL,
        temperature=settings.TEMPERATURE,
        max_output_tokens=settings.MAX_OUTPUT_TOKENS,
    )
    logger.info(f"✓ Chat model: {settings.GEMINI_MODEL}")

    captioner = build_captioner(settings)
    recipe_search = SpoonacularClient(
        api_key=settings.SPOONACULAR_API_KEY,
        number=settings.MAX_RECIPES,
        timeout_seconds=settings.HTTP_TIMEOUT_SECONDS,
    )
    retrying_client = RetryingClient(
        max_retries=settings.MAX_RETRIES,
        initial_delay=settings.RETRY_INITIAL_DELAY,
    )
    logger.info(
        f"✓ Retry policy: {settings.MAX_RETRIES} retries, initial delay {settings.RETRY_INITIAL_DELAY:g}s"
    )

    required = ["GEMINI_API_KEY", "SPOONACULAR_API_KEY"]
    if settings.VISION_PROVIDER == "moondream":
        required.append("MOONDREAM_API_KEY")
    for name in required:
        if not getattr(settings, name):
            logger.warning(f"{name} is not set; requests that need it will fail")

    logger.info("=== Orchestrator initialization complete ===")
    return ChatOrchestrator(
        chat_model=chat_model,
        captioner=captioner,
        recipe_search=recipe_search,
        retrying_client=retrying_client,
        default_persona=settings.DEFAULT_PERSONA,
        max_history=settings.MAX_HISTORY,
    )
