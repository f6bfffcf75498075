"""Instruction prompts rendered from Jinja2 templates."""

from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

DEFAULT_PROMPTS_DIR = Path(__file__).parent.parent / "prompts"

INSTRUCTION_TEMPLATE = "instruction.jinja2"
CHAT_INSTRUCTION_TEMPLATE = "chat_instruction.jinja2"


class PromptLibrary:
    """Renders the fixed extraction instruction in its two phrasings.

    The plain instruction goes to providers with a JSON response mode; the
    chat instruction also spells out the JSON shape for chat models.
    """

    def __init__(self, prompts_dir: str | Path | None = None) -> None:
        self.jinja_env = Environment(
            loader=FileSystemLoader(str(prompts_dir or DEFAULT_PROMPTS_DIR)),
            autoescape=select_autoescape(),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def instruction(self) -> str:
        return self.jinja_env.get_template(INSTRUCTION_TEMPLATE).render().strip()

    def chat_instruction(self) -> str:
        return self.jinja_env.get_template(CHAT_INSTRUCTION_TEMPLATE).render().strip()
