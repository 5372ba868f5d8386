"""
firepush.upload

Re-exports the uploader entry points and the progress recorder.
"""

from firepush.upload.batch import BatchUploader, DocumentWriteError, upload_documents
from firepush.upload.progress import ProgressReporter

__all__ = ["BatchUploader", "DocumentWriteError", "ProgressReporter", "upload_documents"]
