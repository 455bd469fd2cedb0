"""Prompt templates that steer an agent towards the query tools."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional


@dataclass(slots=True)
class PromptDefinition:
    name: str
    description: str
    arguments: List[Dict[str, Any]]
    render: Callable[..., str]


def _signature_argument() -> List[Dict[str, Any]]:
    return [{"name": "signature", "description": "Transaction signature (base58)", "required": True}]


PROMPT_REGISTRY: Dict[str, PromptDefinition] = {
    "calculate-storage-deposit": PromptDefinition(
        name="calculate-storage-deposit",
        description="Calculate storage deposit for a specified number of bytes",
        arguments=[{"name": "bytes", "description": "Number of bytes to store", "required": True}],
        render=lambda bytes: (
            f"Calculate the SOL amount needed to store {bytes} bytes of data on Solana "
            "using getMinimumBalanceForRentExemption."
        ),
    ),
    "minimum-amount-of-sol-for-storage": PromptDefinition(
        name="minimum-amount-of-sol-for-storage",
        description="Calculate the minimum amount of SOL needed for storing 0 bytes on-chain",
        arguments=[],
        render=lambda: (
            "Calculate the amount of SOL needed to store 0 bytes of data on Solana using "
            "getMinimumBalanceForRentExemption & present it to the user as the minimum cost "
            "for storing any data on Solana."
        ),
    ),
    "why-did-my-transaction-fail": PromptDefinition(
        name="why-did-my-transaction-fail",
        description="Look up the given transaction and inspect its logs to figure out why it failed",
        arguments=_signature_argument(),
        render=lambda signature: (
            f"Look up the transaction with signature {signature} and inspect its logs "
            "to figure out why it failed."
        ),
    ),
    "how-much-did-this-transaction-cost": PromptDefinition(
        name="how-much-did-this-transaction-cost",
        description="Fetch the transaction by signature, and break down cost & priority fees",
        arguments=_signature_argument(),
        render=lambda signature: (
            f"Calculate the network fee for the transaction with signature {signature} by "
            "fetching it and inspecting the 'fee' field in 'meta'. Base fee is 0.000005 sol per "
            "signature (also provided as array at the end). So priority fee is fee - "
            "(numSignatures * 0.000005). Please provide the base fee and the priority fee."
        ),
    ),
    "what-happened-in-transaction": PromptDefinition(
        name="what-happened-in-transaction",
        description="Look up the given transaction and inspect its logs & instructions to figure out what happened",
        arguments=_signature_argument(),
        render=lambda signature: (
            f"Look up the transaction with signature {signature} and inspect its logs & "
            "instructions to figure out what happened."
        ),
    ),
}


def list_prompts() -> List[Dict[str, Any]]:
    return [
        {"name": prompt.name, "description": prompt.description, "arguments": prompt.arguments}
        for prompt in PROMPT_REGISTRY.values()
    ]


def get_prompt(name: str, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Render a prompt as a single user message, or return an error dict."""
    prompt = PROMPT_REGISTRY.get(name)
    if prompt is None:
        return {"error": f"Unknown prompt: {name}"}
    arguments = arguments or {}
    missing = [arg["name"] for arg in prompt.arguments if arg.get("required") and arg["name"] not in arguments]
    if missing:
        return {"error": "Missing prompt arguments: " + ", ".join(missing)}
    values = {arg["name"]: str(arguments[arg["name"]]) for arg in prompt.arguments if arg["name"] in arguments}
    return {
        "description": prompt.description,
        "messages": [{"role": "user", "content": {"type": "text", "text": prompt.render(**values)}}],
    }
