"""
Control Flow Node Executors - Rule evaluation and branching
"""

import json
import re
from typing import Any, Dict

from .base import NodeExecutor, ExecutionContext

CONTAINS_PATTERN = re.compile(r"""contains\(\s*['"](.+?)['"]\s*\)""")


def input_text(value: Any) -> str:
    if isinstance(value, dict) and value.get("message"):
        return str(value["message"])
    if not value:
        return ""
    return value if isinstance(value, str) else json.dumps(value, default=str)


def evaluate_condition(condition: str, value: Any) -> bool:
    """
    Evaluate a rule condition against the run input.

    Grammar: "true" is always true, contains('term') is a case-insensitive
    substring test on the input text, anything else is false.
    """
    expression = condition.strip()
    if expression.lower() == "true":
        return True

    match = CONTAINS_PATTERN.search(expression)
    if match:
        return match.group(1).lower() in input_text(value).lower()

    return False


class RuleExecutor(NodeExecutor):
    """Evaluate a condition; labeled true/false edges follow the result"""

    node_type = "rule"
    display_name = "Rule"
    category = "control"
    description = "Evaluate a condition and choose the next step"

    is_branching = True

    async def execute(self, inputs: Dict[str, Any], context: ExecutionContext) -> Dict[str, Any]:
        condition = self.get_config_value("condition", "true")
        action = self.get_config_value("action", "continue")

        result = evaluate_condition(str(condition), inputs.get("input"))
        context.log(f"Condition '{condition}' evaluated to {result}")

        return {
            "condition": condition,
            "result": result,
            "action": action,
            "message": "Condition met" if result else "Condition not met",
        }
