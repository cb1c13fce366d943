"""PR description generation through an external CLI (claude by default)."""

import os
import re
import shutil
from typing import Optional

from flowgit.utils.errors import DescriptionGenerationFailure, PortExecutionFailure
from flowgit.utils.shell import run
from flowgit.utils.types import BranchName, CmdArgs

TEMPLATE_PATHS = [
    ".github/PULL_REQUEST_TEMPLATE.md",
    ".github/pull_request_template.md",
    "PULL_REQUEST_TEMPLATE.md",
    "pull_request_template.md",
]

PROMPT = """You are helping to write a pull request description.

PR Title: {title}
Branch: {branch}
Parent Branch: {parent}

Please analyze the git diff between {parent} and {branch} (use your git tools to get the diff), and write a clear and concise PR description.

Focus on:
- What changes were made and why
- Any important implementation details
- Breaking changes or migration notes if applicable
{template_note}
Keep it concise but informative. Use markdown formatting.

Write only the PR description (the body), not the title."""


def find_pr_template(root: Optional[str] = None) -> Optional[str]:
    """Return the first PR template path present in the repository."""
    for path in TEMPLATE_PATHS:
        if os.path.exists(os.path.join(root or ".", path)):
            return path
    return None


def build_prompt(branch: BranchName, parent: BranchName, title: str, template: Optional[str] = None) -> str:
    template_note = ""
    if template:
        template_note = (
            "\nNote: This repository has a PR template at {}. "
            "Please follow its structure if applicable.\n".format(template)
        )
    return PROMPT.format(title=title, branch=branch, parent=parent, template_note=template_note)


def clean_description(text: str) -> str:
    """Strip chatty preambles and leading separator lines."""
    cleaned = text.strip()
    cleaned = re.sub(r"^Here(?:'?s| is)\s+(?:the\s+)?(?:PR\s+)?description:?\s*", "", cleaned, flags=re.I)
    cleaned = re.sub(r"^[-=]+\s*\n+", "", cleaned)
    return cleaned.strip()


class DescriptionGenerator:
    """Runs `<command> -p <prompt>` and returns the cleaned output."""

    def __init__(self, command: str = "claude", root: Optional[str] = None):
        self.command = command
        self.root = root

    def is_available(self) -> bool:
        return shutil.which(self.command) is not None

    def generate(self, branch: BranchName, parent: BranchName, title: str) -> str:
        if not self.is_available():
            raise DescriptionGenerationFailure("{} is not installed".format(self.command))
        prompt = build_prompt(branch, parent, title, find_pr_template(self.root))
        try:
            out = run(CmdArgs([self.command, "-p", prompt]), cwd=self.root)
        except PortExecutionFailure as e:
            raise DescriptionGenerationFailure(e.stderr or e.args[0])
        return clean_description(out or "")
