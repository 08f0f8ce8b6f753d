# ==============================================================================
# SERVICIO DE SUBIDA DE IMÁGENES
# ==============================================================================
# Valida y guarda imágenes de productos y comprobantes de pago.
#
# VALIDACIONES (en este orden):
# 1. Tipo MIME permitido (jpeg, png, gif, webp)
# 2. La extensión corresponde al tipo MIME
# 3. Nombre de archivo seguro (sin '..', '/', NUL, ni oculto)
# 4. Tamaño máximo 5 MB
# 5. Firma de bytes (magic number) del tipo declarado
# ==============================================================================

import os
import time
import uuid
from typing import Any, Dict, Optional

from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from bakeshop.errors import ValidationError


# Extensiones aceptadas por tipo MIME
ALLOWED_TYPES: Dict[str, tuple] = {
    'image/jpeg': ('.jpg', '.jpeg'),
    'image/png': ('.png',),
    'image/gif': ('.gif',),
    'image/webp': ('.webp',),
}

# Límite por archivo
MAX_FILE_SIZE = 5 * 1024 * 1024  # 5 MB

# URL pública de los archivos guardados
UPLOAD_URL_PREFIX = '/uploads/'


def _matches_signature(mimetype: str, head: bytes) -> bool:
    """Verifica el magic number del archivo para el tipo declarado."""
    if mimetype == 'image/jpeg':
        return head[:3] == b'\xff\xd8\xff'
    if mimetype == 'image/png':
        return head[:4] == b'\x89PNG'
    if mimetype == 'image/gif':
        return head[:3] == b'GIF'
    if mimetype == 'image/webp':
        return head[:4] == b'RIFF' and head[8:12] == b'WEBP'
    return False


class UploadService:
    """
    Guarda imágenes validadas en el directorio de uploads.

    El nombre final es <campo>-<timestamp>-<aleatorio><ext>, nunca el nombre
    enviado por el cliente.
    """

    def __init__(self, upload_dir: str):
        """
        Args:
            upload_dir: Directorio donde se guardan los archivos
        """
        self.upload_dir = upload_dir
        os.makedirs(self.upload_dir, exist_ok=True)

    def validate(self, file: FileStorage) -> bytes:
        """
        Valida un archivo subido y devuelve su contenido.

        Args:
            file: Archivo recibido en request.files

        Returns:
            Bytes del archivo

        Raises:
            ValidationError: Con el motivo del rechazo
        """
        if file is None or not file.filename:
            raise ValidationError('No file uploaded')

        filename = file.filename
        mimetype = (file.mimetype or '').lower()
        if mimetype not in ALLOWED_TYPES:
            raise ValidationError('Invalid file type. Only JPEG, PNG, GIF, and WebP images are allowed.')

        ext = os.path.splitext(filename)[1].lower()
        if ext not in ALLOWED_TYPES[mimetype]:
            raise ValidationError('File extension does not match file type.')

        if '..' in filename or filename.startswith('.') or '/' in filename \
                or '\\' in filename or '\x00' in filename:
            raise ValidationError('Invalid file name.')

        data = file.stream.read(MAX_FILE_SIZE + 1)
        if len(data) > MAX_FILE_SIZE:
            raise ValidationError('File too large. Maximum size is 5MB.')
        if not data:
            raise ValidationError('Uploaded file is empty.')

        if not _matches_signature(mimetype, data[:12]):
            raise ValidationError('File content does not match allowed image types.')
        return data

    def save(self, file: FileStorage, field_name: str = 'image') -> str:
        """
        Valida y guarda un archivo.

        Args:
            file: Archivo recibido
            field_name: Nombre del campo del formulario (prefijo del archivo)

        Returns:
            URL relativa (/uploads/<nombre>)
        """
        data = self.validate(file)
        ext = os.path.splitext(file.filename)[1].lower()
        prefix = secure_filename(field_name) or 'file'
        stored_name = f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:12]}{ext}"

        path = os.path.join(self.upload_dir, stored_name)
        with open(path, 'wb') as f:
            f.write(data)
        return UPLOAD_URL_PREFIX + stored_name

    def delete(self, url: Optional[str]) -> bool:
        """
        Borra un archivo guardado a partir de su URL /uploads/...

        Returns:
            True si se eliminó
        """
        if not url or not url.startswith(UPLOAD_URL_PREFIX):
            return False
        name = secure_filename(url[len(UPLOAD_URL_PREFIX):])
        path = os.path.join(self.upload_dir, name)
        if name and os.path.exists(path):
            os.remove(path)
            return True
        return False
