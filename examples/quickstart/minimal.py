"""
Example: Minimal Quickstart
Description: The simplest possible batchcall example - analyze a few texts in memory
Use case: Learning the basics, quick testing
Service: Gemini (easily adaptable to others)

This example demonstrates:
- Basic service setup
- Choosing a rate limit preset
- Accessing outcomes in input order
"""

import asyncio
import os

from dotenv import load_dotenv

from batchcall import run_batch
from batchcall.services import GeminiService

load_dotenv()


async def main() -> None:
    # 1. Configure the service
    service = GeminiService(
        api_key=os.getenv("GEMINI_API_KEY"),
        model="gemini-flash-latest",
    )

    # 2. Items are plain references; here the text itself is the payload
    items = [
        "The battery died after two days.",
        "Fast shipping and great packaging!",
        "It works, nothing special.",
    ]

    # 3. Run in groups using the free tier preset
    report = await run_batch(
        items=items,
        instruction='Classify the sentiment. Answer as JSON: {"sentiment": "positive|neutral|negative"}',
        service=service,
        policy="free",
    )

    # 4. Outcomes come back in the same order as the items
    for outcome in report:
        if outcome.success:
            print(f"{outcome.item[:40]!r}: {outcome.result}")
        else:
            print(f"{outcome.item[:40]!r}: {outcome.error_kind} - {outcome.error_message}")


if __name__ == "__main__":
    asyncio.run(main())
