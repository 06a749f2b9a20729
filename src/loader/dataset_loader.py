from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List
import pandas as pd


@dataclass
class ManifestEntry:
    product_name: str
    image_sources: List[str]


class DatasetLoader:
    def load_products(self, file_path: str) -> Iterator[ManifestEntry]:
        if file_path.endswith(".csv"):
            df = pd.read_csv(file_path)
        elif file_path.endswith(".xlsx") or file_path.endswith(".xls"):
            df = pd.read_excel(file_path)
        else:
            raise ValueError(f"Unsupported file format: {file_path}. Only .csv, .xlsx, and .xls are supported.")

        if "Product Name" not in df.columns:
            raise ValueError(f"Manifest {file_path} has no 'Product Name' column")

        df = df.fillna("")

        for _, row in df.iterrows():
            product_name = str(row["Product Name"]).strip()
            if not product_name:
                continue

            image_sources = []
            for col in df.columns:
                if col.startswith("Image"):
                    source = str(row[col]).strip()
                    if source:
                        image_sources.append(source)

            if image_sources:
                yield ManifestEntry(
                    product_name=product_name,
                    image_sources=image_sources
                )
