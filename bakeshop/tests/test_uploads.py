import io
import os

import pytest
from werkzeug.datastructures import FileStorage

from conftest import JPEG_BYTES, PNG_BYTES, auth
from bakeshop.errors import ValidationError
from bakeshop.services.upload_service import MAX_FILE_SIZE, UploadService


def _file(data, filename, mimetype):
    return FileStorage(stream=io.BytesIO(data), filename=filename, content_type=mimetype)


@pytest.fixture
def uploads(tmp_path):
    return UploadService(str(tmp_path / 'uploads'))


def test_saves_under_generated_name(uploads):
    url = uploads.save(_file(PNG_BYTES, 'my photo.png', 'image/png'), 'image')
    name = url[len('/uploads/'):]
    assert name.startswith('image-') and name.endswith('.png')
    assert 'photo' not in name
    with open(os.path.join(uploads.upload_dir, name), 'rb') as f:
        assert f.read() == PNG_BYTES

    assert uploads.delete(url) is True
    assert uploads.delete(url) is False


@pytest.mark.parametrize('data, filename, mimetype, message', [
    (PNG_BYTES, 'doc.pdf', 'application/pdf',
     'Invalid file type. Only JPEG, PNG, GIF, and WebP images are allowed.'),
    (PNG_BYTES, 'photo.jpg', 'image/png', 'File extension does not match file type.'),
    (PNG_BYTES, '.hidden.png', 'image/png', 'Invalid file name.'),
    (PNG_BYTES, 'a..b.png', 'image/png', 'Invalid file name.'),
    (b'', 'empty.png', 'image/png', 'Uploaded file is empty.'),
    (JPEG_BYTES, 'fake.png', 'image/png', 'File content does not match allowed image types.'),
    (b'<?php echo 1; ?>', 'shell.gif', 'image/gif', 'File content does not match allowed image types.'),
])
def test_rejects_bad_files(uploads, data, filename, mimetype, message):
    with pytest.raises(ValidationError) as exc:
        uploads.validate(_file(data, filename, mimetype))
    assert exc.value.message == message


def test_rejects_oversized_file(uploads):
    data = PNG_BYTES + b'\x00' * MAX_FILE_SIZE
    with pytest.raises(ValidationError) as exc:
        uploads.validate(_file(data, 'big.png', 'image/png'))
    assert exc.value.message == 'File too large. Maximum size is 5MB.'


def test_accepts_webp_signature(uploads):
    webp = b'RIFF\x00\x00\x00\x00WEBPVP8 ' + b'\x00' * 16
    assert uploads.validate(_file(webp, 'cake.webp', 'image/webp')) == webp


def test_upload_endpoint(client, admin):
    r = client.post('/api/products/upload', data={
        'image': (io.BytesIO(JPEG_BYTES), 'ensaymada.jpeg', 'image/jpeg'),
    }, content_type='multipart/form-data', headers=auth(admin))
    assert r.status_code == 200
    url = r.get_json()['imageUrl']
    assert url.startswith('/uploads/image-') and url.endswith('.jpeg')

    bad = client.post('/api/products/upload', data={
        'image': (io.BytesIO(b'not an image'), 'ensaymada.jpg', 'image/jpeg'),
    }, content_type='multipart/form-data', headers=auth(admin))
    assert bad.status_code == 400

    missing = client.post('/api/products/upload', data={}, content_type='multipart/form-data',
                          headers=auth(admin))
    assert missing.status_code == 400
    assert missing.get_json()['message'] == 'No file uploaded'


def test_request_over_limit_is_400(client, admin):
    huge = b'\x89PNG' + b'\x00' * (7 * 1024 * 1024)
    r = client.post('/api/products/upload', data={
        'image': (io.BytesIO(huge), 'huge.png', 'image/png'),
    }, content_type='multipart/form-data', headers=auth(admin))
    assert r.status_code == 400
    assert r.get_json()['message'] == 'File too large. Maximum size is 5MB.'
