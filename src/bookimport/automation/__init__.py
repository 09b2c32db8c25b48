"""Drop-folder automation for manuscript imports."""

from bookimport.automation.drop_folder import (
    DropFolderImporter,
    DropImportOptions,
    ManuscriptUploadHandler,
    PendingUploads,
    is_manuscript_upload,
)

__all__ = [
    "DropFolderImporter",
    "DropImportOptions",
    "ManuscriptUploadHandler",
    "PendingUploads",
    "is_manuscript_upload",
]
