"""List the Claude models the configured API key can use.

Handy when PLANNER_MODEL / FAST_MODEL in .env point at a retired model.
"""
import asyncio
import os
import sys

import anthropic

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "backend"))

from server import config  # noqa: E402  (loads .env)


async def list_anthropic_models():
    if not config.ANTHROPIC_API_KEY:
        print("ANTHROPIC_API_KEY not found in environment.")
        return 1

    client = anthropic.AsyncAnthropic(api_key=config.ANTHROPIC_API_KEY)
    try:
        models_response = await client.models.list()
    except anthropic.APIError as e:
        print(f"  FAILED to list models: {type(e).__name__}: {e}")
        return 1

    configured = {config.PLANNER_MODEL, config.FAST_MODEL}
    print("Models available:")
    for model in models_response.data:
        marker = "  *" if model.id in configured else "   "
        print(f"{marker} {model.id} (Created: {model.created_at})")

    missing = configured - {m.id for m in models_response.data}
    for model_id in sorted(missing):
        print(f"WARNING: configured model {model_id} is not available for this key")
    return 1 if missing else 0


if __name__ == "__main__":
    sys.exit(asyncio.run(list_anthropic_models()))
