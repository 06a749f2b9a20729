from __future__ import annotations

import asyncio
import argparse
import logging
import json
import os
import sys

from src.config.settings import settings
from src.loader.dataset_loader import DatasetLoader
from src.loader.image_loader import ImageLoader
from src.pipeline.components import build_components
from src.pipeline.errors import ImageServiceError
from src.schema.input_schema import UploadRequest


async def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    logger = logging.getLogger(__name__)

    parser = argparse.ArgumentParser(
        description="Watermark and upload product images listed in a manifest"
    )
    parser.add_argument(
        "--input",
        type=str,
        default="data/input/products.csv",
        help="Path to manifest CSV/Excel file ('Product Name' plus 'Image*' columns)"
    )
    parser.add_argument(
        "--output",
        type=str,
        default="data/output/records.json",
        help="Path to output JSON file"
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Maximum number of products to process"
    )
    parser.add_argument(
        "--bucket",
        type=str,
        default=None,
        help="S3 bucket name (overrides environment variable)"
    )

    args = parser.parse_args()

    if args.bucket:
        settings.AWS_S3_BUCKET_NAME = args.bucket

    if not settings.AWS_S3_BUCKET_NAME:
        logger.error("AWS_S3_BUCKET_NAME is not set. Please provide it via --bucket or environment variable.")
        sys.exit(1)

    components = build_components(settings)
    await components.product_store.ensure_indexes()

    dataset_loader = DatasetLoader()
    image_loader = ImageLoader()

    results = []
    failures = 0
    count = 0

    try:
        for entry in dataset_loader.load_products(args.input):
            if args.limit and count >= args.limit:
                break
            count += 1

            logger.info(f"Processing product: {entry.product_name}")

            loaded = await asyncio.gather(*[image_loader.load(src) for src in entry.image_sources])
            images = [image for image in loaded if image is not None]
            if len(images) < len(entry.image_sources):
                logger.warning(
                    f"Product {entry.product_name}: {len(entry.image_sources) - len(images)} image(s) could not be loaded"
                )

            try:
                record = await components.processor.process_upload(
                    UploadRequest(product_name=entry.product_name, images=images)
                )
            except ImageServiceError as e:
                failures += 1
                results.append({"productName": entry.product_name, "error": e.message})
                continue

            results.append(record.model_dump(by_alias=True))
            logger.info(f"Completed {count} products")
    finally:
        await components.product_store.close()

    output_dir = os.path.dirname(args.output)
    if output_dir and not os.path.exists(output_dir):
        os.makedirs(output_dir)

    with open(args.output, "w") as f:
        json.dump(results, f, indent=2)

    logger.info(f"Processing complete ({failures} failed). Results saved to {args.output}")


if __name__ == "__main__":
    asyncio.run(main())
