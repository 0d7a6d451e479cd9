"""
Uploads API service layer.

Request orchestration that sits between the routers and the store/converter
adapters.
"""

from .upload_service import UploadService

__all__ = ['UploadService']
