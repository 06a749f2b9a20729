from typing import List
from pydantic import BaseModel


class ImageFile(BaseModel):
    filename: str
    content_type: str
    data: bytes


class UploadRequest(BaseModel):
    product_name: str
    images: List[ImageFile]
