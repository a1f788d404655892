"""Extract scan-related variable mappings from ``${{ ... }}`` expressions.

Lets the wizard pick up the variable and secret names a user typed into the
workflow editor so generated content keeps using them.
"""

from __future__ import annotations

import logging
import re

from pydantic import BaseModel, Field

logger = logging.getLogger("scanwizard.variables")

_EXPRESSION_RE = re.compile(r"\$\{\{[^}]+\}\}")


class VariableMapping(BaseModel):
    """Expressions found in a workflow, grouped the way the wizard stores them."""

    env: dict[str, str] = Field(default_factory=dict)
    secrets: dict[str, str] = Field(default_factory=dict)
    github: dict[str, str] = Field(default_factory=dict)
    bridge_cli: dict[str, str] = Field(default_factory=dict)

    @property
    def empty(self) -> bool:
        return not (self.env or self.secrets or self.github or self.bridge_cli)


# (required fragments, [(group, name), ...]); first matching rule wins.
_RULES: list[tuple[tuple[str, ...], list[tuple[str, str]]]] = [
    (("vars.", "BLACKDUCKSCA", "URL"), [("env", "BLACKDUCKSCA_URL")]),
    (("vars.", "COVERITY", "URL"), [("env", "COVERITY_URL")]),
    (("vars.", "POLARIS", "URL"), [("env", "POLARIS_URL")]),
    (("secrets.", "BLACKDUCKSCA", "TOKEN"), [("secrets", "BLACKDUCKSCA_TOKEN")]),
    (("secrets.", "COVERITY", "PASSPHRASE"), [("secrets", "COVERITY_PASSPHRASE")]),
    (("secrets.", "COVERITY", "USER"), [("secrets", "COVERITY_USER")]),
    (("secrets.", "POLARIS", "TOKEN"), [("secrets", "POLARIS_ACCESS_TOKEN")]),
    (
        ("secrets.", "GITHUB", "TOKEN"),
        [("secrets", "GITHUB_TOKEN"), ("env", "GITHUB_TOKEN")],
    ),
    (("vars.", "BRIDGECLI", "LINUX"), [("bridge_cli", "LINUX64")]),
    (("vars.", "BRIDGECLI", "WIN"), [("bridge_cli", "WIN64")]),
    (("runner.temp",), [("bridge_cli", "RUNNER_TEMP")]),
    (
        ("github.event.repository.name",),
        [("github", "APPLICATION_NAME"), ("github", "PROJECT_NAME")],
    ),
    (("github.event.ref_name",), [("github", "BRANCH_NAME")]),
    (("github.ref_name",), [("github", "BRANCH_NAME")]),
]


def extract_workflow_variables(yaml_text: str) -> VariableMapping:
    """Categorise every ``${{ ... }}`` expression in *yaml_text*.

    Works line by line on the raw text, so it also handles documents that do
    not parse yet.  Later occurrences overwrite earlier ones.
    """
    mapping = VariableMapping()
    for line in yaml_text.splitlines():
        if "${{" not in line:
            continue
        for match in _EXPRESSION_RE.findall(line.strip()):
            for fragments, targets in _RULES:
                if all(fragment in match for fragment in fragments):
                    for group, name in targets:
                        getattr(mapping, group)[name] = match
                    break
    logger.info("Extracted variable mappings from YAML: %s", mapping.model_dump())
    return mapping
