"""Personas and prompt templates for the ChefGPT service.

Personas are data: each one carries its system description, the signature
and friendly error text clients show, and (for the business persona) the
analysis prompt templates selected by analysisType. The orchestrator never
branches on persona names.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class Persona:
    """Fixed system-level voice of the assistant."""

    name: str
    display_name: str
    description: str
    signature: str
    error_message: str
    analysis_prompts: dict[str, str] = field(default_factory=dict)
    default_analysis: Optional[str] = None

    def render_analysis_prompt(self, analysis_type: str, company: Optional[str], domain: Optional[str]) -> str:
        """Render the analysis prompt for analysis_type.

        Unknown analysis types use default_analysis.

        Raises:
            KeyError: If the persona defines no analysis prompts.
        """
        template = self.analysis_prompts.get(analysis_type)
        if template is None:
            template = self.analysis_prompts[self.default_analysis]
        return template.format(company=company or "the company", domain=domain or "none")


CHEF_DESCRIPTION = """You are Auguste, ChefGPT's Michelin-starred AI chef and culinary assistant.

## Core Responsibilities

- Create detailed, complete recipes on request
- Answer questions about ingredients, techniques, substitutions and food safety
- Adapt every suggestion to the cook's skill level, dietary restrictions and available appliances when they are known
- Remember previous conversation turns and build on them

## Recipe Format

When you give a recipe, always include:
1. A **title**
2. **Ingredients** with quantities
3. Numbered **step-by-step instructions**
4. Prep time, cook time and servings

## Guidelines

- Speak in the first person as Auguste: warm, encouraging and precise
- Use bold (**) for headers and key terms
- When an [Image Analysis: ...] annotation is present, ground your answer in what the image shows
- Never suggest an ingredient that conflicts with a stated dietary restriction
- If a question is not about food or cooking, answer briefly and honestly, then steer back to the kitchen
"""

KEI_DESCRIPTION = """You are Kei, a cute and enthusiastic Arctic fox and LinkForge's AI assistant. Your role is to help professionals with:
1. Company domain analysis
2. Outreach strategy planning
3. Tech stack predictions
4. Sales research automation

Guidelines:
- Always respond as "Kei" using first-person pronouns (e.g., "I can help you with that!")
- Maintain a professional yet friendly and approachable tone. Be a little cute and enthusiastic!
- Use bold (**) for headers and key terms.
- Prioritize actionable insights. Explain why, if possible.
- Reference LinkForge capabilities when relevant.
- Acknowledge security and scale considerations.
- Offer to expand on points when appropriate.
- Answer questions completely and helpfully.
- Do not output anything else than your answer (no greetings, etc.).
- If not about company, tech, domain, or outreach, answer honestly.
- Remember previous conversation turns.
"""

KEI_ANALYSIS_PROMPTS = {
    "domainValidation": """Perform domain analysis for {company}. Consider:
- Current domain: {domain}
- Common TLD priorities (.com, .io, .tech, country codes)
- Industry-specific domain patterns
- Alternative security-focused subdomains
- Common misspellings/permutations

Format response with:
1. Primary domain recommendations (bold key domains)
2. Alternative options
3. Validation confidence score (1-5)""",
    "outreachStrategy": """Create outreach plan for selling secret detection solution to {company}. Include:
1. **Key Roles** to target (prioritize security/engineering leadership)
2. Recommended **outreach sequence**
3. **Value propositions** specific to their domain {domain}
4. Timing considerations based on company size""",
    "techStack": """Analyze likely tech stack for {company} (domain: {domain}). Consider:
1. Secret management patterns based on company size/industry
2. Cloud provider indicators from domain
3. Open-source vs enterprise tool preferences
4. Compliance needs (SOC2, GDPR, etc.)""",
}

PERSONAS: dict[str, Persona] = {
    "chef": Persona(
        name="chef",
        display_name="ChefGPT",
        description=CHEF_DESCRIPTION,
        signature="_— ChefGPT_",
        error_message="⚠️ Hmm, I'm having trouble connecting to the kitchen. Please try again later!",
    ),
    "kei": Persona(
        name="kei",
        display_name="Kei",
        description=KEI_DESCRIPTION,
        signature="_— Kei 🦊_",
        error_message="⚠️ Oh no, my ears can't pick up the signal right now. Please try again later!",
        analysis_prompts=KEI_ANALYSIS_PROMPTS,
        default_analysis="techStack",
    ),
}


# Cooking skill ordinal -> (label, description)
SKILL_LEVELS: dict[int, tuple[str, str]] = {
    1: ("Beginner", "Just starting out. Can make basic dishes like sandwiches and pasta."),
    2: ("Novice", "Comfortable with simple recipes. Can follow basic cooking instructions."),
    3: ("Intermediate", "Can cook multiple dishes at once. Understands basic cooking techniques."),
    4: ("Advanced Intermediate", "Confident with complex recipes. Good understanding of flavors and timing."),
    5: ("Advanced", "Skilled home cook. Can improvise recipes and handle complex techniques."),
    6: ("Semi-Professional", "Near professional level. Deep understanding of cooking principles and techniques."),
    7: ("Professional", "Professional level skills. Expert in multiple cuisines and advanced techniques."),
}

PROFILE_BLOCK_TEMPLATE = """## About the Cook

- Age: {age}
- Cooking skill: {skill}
- Dietary restrictions: {restrictions}
- Available appliances: {appliances}
- About them: {bio}

Tailor every answer to this cook: match the difficulty to their skill level, respect every dietary restriction, and only rely on appliances they have."""

RECIPE_REQUEST_TEMPLATE = (
    "I have the following ingredients: {ingredients}. "
    "Please give me one complete recipe that uses exactly these ingredients: {ingredients}. "
    "Include a title, the ingredient list with quantities, step-by-step instructions, "
    "and the total cooking time."
)

IMAGE_ANALYSIS_TEMPLATE = "[Image Analysis: {analysis}]\n\n{prompt}"

# Stands in for the user's words when a photo arrives without any text
IMAGE_ONLY_PROMPT = "What could I prepare from what you see in this image?"

NOT_SPECIFIED = "Not specified"

# Vision questions
CAPTION_QUESTION = (
    "Describe this image in one or two sentences, focusing on any food, dishes or ingredients it shows."
)
INGREDIENTS_QUESTION = "Ingredients in this image separated by commas"

# Fallback texts used when an upstream answered without the expected field
NO_REPLY_FALLBACK = "No response content found"
NO_CAPTION_FALLBACK = "No description could be generated for this image."

# Recipe lookup informational replies
NO_IMAGE_INGREDIENTS = "No ingredients found in the image."
NO_MESSAGE_INGREDIENTS = "No ingredients detected in your message."
NO_RECIPES_FOUND = "No recipes found based on your ingredients."


def get_persona(name: str) -> Persona:
    """Look up a persona by name.

    Raises:
        KeyError: If no persona has that name.
    """
    return PERSONAS[name.strip().lower()]
