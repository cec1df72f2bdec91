#!/usr/bin/env python3
"""Ad hoc query runner for the ChefGPT Service.

Run queries directly without starting the API server.

Usage:
    python query.py "What can I make with chicken and rice?"
    python query.py --debug "Your query"  # Show full JSON response
    python query.py --conversation dinner "I have eggs and cheese, recipe please"
    python query.py --image images/pasta.png "What can I make?"
    python query.py --image images/pasta.png --image-only  # Caption only
    python query.py --lookup "I have tomatoes and basil, recipe?"  # Spoonacular lookup
    python query.py --persona kei --analysis techStack --company Acme --domain acme.io
    python query.py --profile profile.json "Something quick for dinner"

Features:
- Direct orchestrator execution (no HTTP)
- Conversation history kept in JSON files keyed by --conversation id
- Failed turns are recorded as errors and never replayed to the model
- Optional cook profile loaded from a JSON file
- Markdown rendering with rich, signed with the persona signature
"""

import asyncio
import base64
import json
import sys
import uuid
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.markdown import Markdown

from chefgpt.agents.orchestrator import initialize_orchestrator
from chefgpt.models.models import ChatRequest, RecipeLookupRequest, UserProfile
from chefgpt.prompts.prompts import get_persona
from chefgpt.utils.config import config
from chefgpt.utils.logger import logger

console = Console()

CONVERSATION_DIR = Path(".chefgpt") / "conversations"

MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
}

USAGE = (
    'Usage: python query.py [--debug] [--image PATH] [--image-only] [--lookup] [--persona NAME]\n'
    '                       [--analysis TYPE] [--company NAME] [--domain DOMAIN]\n'
    '                       [--profile PATH] [--conversation ID] "<your query>"'
)


def conversation_path(conversation_id: str, store_dir: Path = CONVERSATION_DIR) -> Path:
    return store_dir / f"{conversation_id}.json"


def load_conversation(conversation_id: str, store_dir: Path = CONVERSATION_DIR) -> list[dict]:
    """Load stored turns for a conversation (empty list if none yet)."""
    path = conversation_path(conversation_id, store_dir)
    if not path.exists():
        return []
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def save_conversation(conversation_id: str, turns: list[dict], store_dir: Path = CONVERSATION_DIR) -> None:
    path = conversation_path(conversation_id, store_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(turns, f, indent=2, ensure_ascii=False)


def history_for_request(turns: list[dict]) -> list[dict]:
    """Stored turns to replay, without the ones recorded as errors."""
    return [turn for turn in turns if not turn.get("isError")]


def load_profile(profile_path: str) -> UserProfile:
    """Load a cook profile from a JSON file (UI form names accepted)."""
    with open(profile_path, encoding="utf-8") as f:
        return UserProfile.model_validate(json.load(f))


def load_image(image_path: str) -> str:
    """Read an image file and return it as a data URL.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    image_file = Path(image_path)
    if not image_file.exists():
        raise FileNotFoundError(f"Image file not found: {image_path}")

    with open(image_file, "rb") as f:
        image_bytes = f.read()

    image_data = base64.b64encode(image_bytes).decode("utf-8")
    mime_type = MIME_TYPES.get(image_file.suffix.lower(), "image/jpeg")
    logger.info(f"✓ Loaded image: {image_file.name} ({len(image_data) / 1024:.1f} KB base64)")
    return f"data:{mime_type};base64,{image_data}"


def new_turn(role: str, content: str, is_error: bool = False) -> dict:
    turn = {"id": uuid.uuid4().hex[:12], "role": role, "content": content}
    if is_error:
        turn["isError"] = True
    return turn


async def run_query(
    query: str,
    debug: bool = False,
    image_path: Optional[str] = None,
    image_only: bool = False,
    lookup: bool = False,
    persona_name: Optional[str] = None,
    analysis_type: Optional[str] = None,
    company: Optional[str] = None,
    domain: Optional[str] = None,
    profile_path: Optional[str] = None,
    conversation_id: Optional[str] = None,
) -> int:
    """Execute a single ad hoc query and print the response.

    Returns:
        Process exit code (0 on success, 1 on failure).
    """
    try:
        persona = get_persona(persona_name or config.DEFAULT_PERSONA)
    except KeyError:
        console.print(f"[red]✗ Unknown persona: {persona_name}[/red]")
        return 1

    orchestrator = initialize_orchestrator()

    turns = load_conversation(conversation_id) if conversation_id else []
    if query:
        turns.append(new_turn("user", query))

    try:
        image_data = load_image(image_path) if image_path else None

        if lookup:
            request = RecipeLookupRequest(image_file=image_data, messages=history_for_request(turns))
            response = await orchestrator.handle_recipe_lookup(request)
            reply = response.content or "\n".join(
                f"- **{recipe.title}** (uses {recipe.used_ingredient_count or 0}, "
                f"missing {recipe.missed_ingredient_count or 0})"
                for recipe in response.recipes or []
            )
        else:
            request = ChatRequest(
                messages=history_for_request(turns),
                image_base64=image_data,
                image_only=image_only,
                user_profile=load_profile(profile_path) if profile_path else None,
                persona=persona.name,
                analysis_type=analysis_type,
                company=company,
                domain=domain,
            )
            response = await orchestrator.handle_chat(request)
            reply = response.content

    except Exception as e:
        logger.error(f"Query execution failed: {e}", exc_info=debug)
        console.print(f"[red]{persona.error_message}[/red]")
        turns.append(new_turn("assistant", persona.error_message, is_error=True))
        if conversation_id:
            save_conversation(conversation_id, turns)
        return 1

    console.print()

    if debug:
        console.print("[bold cyan]Debug Mode: Full Response[/bold cyan]")
        console.print("[dim]" + "=" * 60 + "[/dim]")
        console.print_json(data=response.model_dump(mode="json", by_alias=True, exclude_none=True))
        console.print("[dim]" + "=" * 60 + "[/dim]")
        console.print()

    if reply:
        console.print(Markdown(f"{reply}\n\n{persona.signature}"))
    else:
        console.print("[yellow]No response text found[/yellow]")

    turns.append(new_turn("assistant", reply))
    if conversation_id:
        save_conversation(conversation_id, turns)
        logger.info(f"Conversation '{conversation_id}' saved ({len(turns)} turns)")

    return 0


VALUE_FLAGS = {
    "--image": "image_path",
    "--persona": "persona_name",
    "--analysis": "analysis_type",
    "--company": "company",
    "--domain": "domain",
    "--profile": "profile_path",
    "--conversation": "conversation_id",
}

BOOL_FLAGS = {
    "--debug": "debug",
    "--image-only": "image_only",
    "--lookup": "lookup",
}


def parse_args(argv: list[str]) -> dict:
    """Parse leading --flags; everything after them is the query.

    Raises:
        ValueError: On an unknown flag or a flag missing its value.
    """
    options: dict = {}
    index = 0

    while index < len(argv) and argv[index].startswith("--"):
        flag = argv[index]
        if flag in BOOL_FLAGS:
            options[BOOL_FLAGS[flag]] = True
            index += 1
        elif flag in VALUE_FLAGS:
            if index + 1 >= len(argv):
                raise ValueError(f"{flag} flag requires a value")
            options[VALUE_FLAGS[flag]] = argv[index + 1]
            index += 2
        else:
            raise ValueError(f"Unknown flag: {flag}")

    options["query"] = " ".join(argv[index:])
    return options


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print(USAGE)
        print("")
        print("Examples:")
        print('  python query.py "What can I make with chicken and rice?"')
        print('  python query.py --conversation dinner "I have eggs and cheese, recipe please"')
        print('  python query.py --image images/pasta.png --image-only')
        print('  python query.py --lookup "I have tomatoes and basil, recipe?"')
        sys.exit(1)

    try:
        options = parse_args(sys.argv[1:])
    except ValueError as e:
        print(f"Error: {e}")
        print(USAGE)
        sys.exit(1)

    if not options["query"] and not options.get("image_path") and not options.get("analysis_type"):
        print("Error: No query provided")
        print(USAGE)
        sys.exit(1)

    try:
        exit_code = asyncio.run(run_query(**options))
    except KeyboardInterrupt:
        logger.info("\nQuery interrupted by user.")
        exit_code = 0
    sys.exit(exit_code)
