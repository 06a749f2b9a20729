from enum import Enum


class UploadStage(str, Enum):
    validating = "validating"
    processing = "processing"
    uploading = "uploading"
    persisting = "persisting"
    done = "done"
    error = "error"


class RecordStoreBackend(str, Enum):
    mongo = "mongo"
    memory = "memory"
