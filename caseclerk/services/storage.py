import os
import uuid
from typing import Dict, Optional

from flask import current_app
from werkzeug.utils import secure_filename


def stream_size(file_storage) -> int:
    """Size of an uploaded file in bytes, measured without writing it to disk."""
    stream = file_storage.stream
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


class UploadStorage:
    """Stores uploaded files on local disk under unique names."""

    def __init__(self, base_upload_folder: Optional[str] = None, subfolder: str = ''):
        """
        Args:
            base_upload_folder: Root directory for uploads. Defaults to the
                app's UPLOAD_FOLDER.
            subfolder: Optional directory below the root (e.g. 'audio').
        """
        root = base_upload_folder or current_app.config['UPLOAD_FOLDER']
        self.folder = os.path.join(root, subfolder) if subfolder else root
        os.makedirs(self.folder, exist_ok=True)

    def path_for(self, stored_name: str) -> str:
        return os.path.join(self.folder, os.path.basename(stored_name))

    def save(self, file_storage, prefix: str = 'doc') -> Dict:
        """Persist a werkzeug FileStorage and return its storage metadata."""
        original_name = file_storage.filename or 'upload'
        safe_name = secure_filename(original_name) or 'upload'
        stored_name = f"{prefix}-{uuid.uuid4().hex}-{safe_name}"
        file_path = self.path_for(stored_name)
        file_storage.save(file_path)
        return {
            'original_name': original_name,
            'file_name': stored_name,
            'file_path': file_path,
            'file_size': os.path.getsize(file_path),
            'mime_type': file_storage.mimetype or 'application/octet-stream',
        }

    def delete(self, stored_name: str) -> bool:
        path = self.path_for(stored_name)
        if os.path.exists(path):
            os.remove(path)
            return True
        return False

    def read_text(self, stored_name: str, limit: int = 1024 * 1024) -> str:
        with open(self.path_for(stored_name), 'rb') as fh:
            return fh.read(limit).decode('utf-8', errors='replace')
