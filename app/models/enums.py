from enum import Enum


class ProposalStatus(str, Enum):
    uploaded = "uploaded"
    processing = "processing"


class OutboxOperation(str, Enum):
    upsert = "upsert"
    delete = "delete"


class UploadEventType(str, Enum):
    uploading = "uploading"
    uploaded = "uploaded"
    processing = "processing"
    error = "error"
