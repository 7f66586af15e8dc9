"""
Example: Product image analysis from a JSONL file
Description: Download product images, analyze them with Gemini and save JSONL results
Use case: Bulk tagging of a catalog on a paid API tier

This example demonstrates:
- Reading item references from a JSONL file
- Resolving URLs to image bytes with HttpResolver
- Structured output with a Pydantic schema
- Progress callbacks and cancellation
"""

import asyncio
import json
import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from batchcall import CancelSignal, RateLimitPolicy, run_batch_from_file
from batchcall.services import GeminiService, HttpResolver

load_dotenv()


class ProductTags(BaseModel):
    """Schema for product image analysis."""

    category: str = Field(description="Product category")
    colors: list[str] = Field(description="Dominant colors")
    has_text: bool = Field(description="Whether the image contains text")


service = GeminiService(
    api_key=os.getenv("GEMINI_API_KEY"),
    model="gemini-flash-latest",
    response_schema=ProductTags.model_json_schema(),
)

items_path = "data/product_images.jsonl"
os.makedirs("data", exist_ok=True)
with open(items_path, mode="w", encoding="utf-8") as f:
    for i in range(20):
        f.write(json.dumps({"item": f"https://picsum.photos/seed/{i}/512"}) + "\n")


async def main() -> None:
    cancel = CancelSignal()

    def on_progress(completed: int, total: int, in_flight: list[str]) -> None:
        if in_flight:
            print(f"[{completed}/{total}] analyzing {len(in_flight)} images")

    report = await run_batch_from_file(
        requests_file=items_path,
        instruction="Tag this product image.",
        service=service,
        # Custom policy: a little gentler than the paid preset
        policy=RateLimitPolicy(max_concurrent=5, delay_between_groups=1.0, name="catalog"),
        resolver=HttpResolver(),
        on_progress=on_progress,
        cancel_signal=cancel,
        item_timeout=60.0,
    )

    print(f"Finished in {report.stats.duration_seconds:.2f}s")
    print(f"Success: {report.stats.successful}, Failed: {report.stats.failed}")


if __name__ == "__main__":
    asyncio.run(main())
