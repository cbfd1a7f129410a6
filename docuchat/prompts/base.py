"""
Prompt Builder - chat and summary prompts rendered from Jinja2 templates
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from docuchat.config import SUMMARY_TYPES

Message = Dict[str, str]

# Stored chat roles mapped to completion API roles
ROLE_MAP = {"user": "user", "ai": "assistant"}


class PromptBuilder:
    """Builds completion message lists from templates"""

    def __init__(self):
        templates_dir = Path(__file__).parent / "templates"
        self.env = Environment(
            loader=FileSystemLoader(templates_dir),
            autoescape=select_autoescape(['html', 'xml']),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def _render(self, template: str, **context: Any) -> str:
        return self.env.get_template(template).render(**context).strip()

    def build_chat_messages(
        self,
        question: str,
        sections: List[Dict[str, Any]],
        history: Optional[List[Any]] = None,
        filename: str = "",
    ) -> List[Message]:
        """
        System prompt with context, prior turns, then the new question

        Args:
            question: The user's question
            sections: Context passages with "content" and optional "page_number"
            history: Prior ChatMessage rows, oldest first
            filename: Document name shown to the model
        """
        messages = [{
            "role": "system",
            "content": self._render("chat_system.jinja2", sections=sections, filename=filename),
        }]

        for message in history or []:
            messages.append({"role": ROLE_MAP.get(message.role, "user"), "content": message.content})

        messages.append({"role": "user", "content": question})
        return messages

    def build_summary_messages(
        self,
        text: str,
        summary_type: str,
        domain_focus: Optional[str] = None,
        filename: str = "",
        part: int = 1,
        part_count: int = 1,
    ) -> List[Message]:
        style = SUMMARY_TYPES.get(summary_type, SUMMARY_TYPES["standard"])
        return [
            {
                "role": "system",
                "content": self._render("summary_system.jinja2", style=style, domain_focus=domain_focus),
            },
            {
                "role": "user",
                "content": self._render(
                    "summary_user.jinja2",
                    text=text,
                    filename=filename,
                    part=part,
                    part_count=part_count,
                ),
            },
        ]

    def build_combine_messages(
        self,
        partials: List[str],
        summary_type: str,
        domain_focus: Optional[str] = None,
        filename: str = "",
    ) -> List[Message]:
        style = SUMMARY_TYPES.get(summary_type, SUMMARY_TYPES["standard"])
        return [
            {
                "role": "system",
                "content": self._render("summary_system.jinja2", style=style, domain_focus=domain_focus),
            },
            {
                "role": "user",
                "content": self._render("summary_combine.jinja2", partials=partials, filename=filename),
            },
        ]
