"""
Tests for the Flask assembler service.
"""

import base64
import io

import pytest

from rvjump_asm.server import app


@pytest.fixture
def client():
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client


class TestAssembleEndpoint:
    """Tests for POST /api/assemble."""

    def test_json_source(self, client):
        response = client.post('/api/assemble', json={'source': 'L1:\nadd x1,x2,x3\nbne x1,x2,L1'})
        assert response.status_code == 200
        body = response.get_json()
        assert body['success'] is True
        assert body['failing_line'] == 0
        assert body['size'] == 8
        assert body['hex'] == ['003100b3', '00209063']
        assert base64.b64decode(body['data']) == bytes.fromhex('b300310063902000')

    def test_json_options(self, client):
        response = client.post('/api/assemble', json={
            'source': 'L1:\nadd x1,x2,x3\nbne x1,x2,L1',
            'branch_offsets': 'relative',
        })
        assert response.get_json()['hex'][1] == 'fe209ee3'

    def test_file_upload(self, client):
        data = {'file': (io.BytesIO(b'addi a0, x0, 1\n'), 'prog.S'), 'isa': 'RV64I'}
        response = client.post('/api/assemble', data=data, content_type='multipart/form-data')
        assert response.status_code == 200
        body = response.get_json()
        assert body['isa'] == 'RV64I'
        assert body['hex'] == ['00100513']

    def test_text_body(self, client):
        response = client.post('/api/assemble', data='nop\nret', content_type='text/plain')
        assert response.status_code == 200
        assert response.get_json()['hex'] == ['00000013', '00008067']

    def test_empty_program(self, client):
        response = client.post('/api/assemble', json={'source': '# nothing here\n'})
        assert response.status_code == 200
        assert response.get_json()['size'] == 0

    def test_assembly_failure(self, client):
        response = client.post('/api/assemble', json={
            'source': 'add x1,x2,x3\nBADMNEMONIC x,y,z\naddi x1,x2,3',
        })
        assert response.status_code == 422
        body = response.get_json()
        assert body['error'] == 'Assembly failed'
        assert body['failing_line'] == 2
        assert body['message'] == 'Invalid mnemonic: badmnemonic'
        assert body['line'] == 2
        assert body['text'] == 'BADMNEMONIC x,y,z'

    def test_undefined_label_reason(self, client):
        response = client.post('/api/assemble', json={'source': 'nop\n\nj nowhere'})
        assert response.status_code == 422
        body = response.get_json()
        assert body['failing_line'] == 2
        assert body['message'] == 'Undefined label: nowhere'
        assert body['line'] == 3

    def test_unreadable_source(self, client):
        data = {'file': (io.BytesIO(b'\xff\xfe\x00'), 'prog.S')}
        response = client.post('/api/assemble', data=data, content_type='multipart/form-data')
        assert response.status_code == 400
        assert response.get_json()['failing_line'] == -1
        assert 'not valid UTF-8' in response.get_json()['message']

    def test_missing_source(self, client):
        response = client.post('/api/assemble', json={'isa': 'RV32I'})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'No source provided'

    def test_non_string_source(self, client):
        response = client.post('/api/assemble', json={'source': 42})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Invalid source'

    def test_bad_option(self, client):
        response = client.post('/api/assemble', json={'source': 'nop', 'isa': 'z80'})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Invalid options'

    def test_options_preflight(self, client):
        response = client.options('/api/assemble')
        assert response.status_code == 204
        assert response.headers['Access-Control-Allow-Origin'] == '*'


class TestIsaEndpoint:
    """Tests for GET /api/isa."""

    def test_lists_instructions(self, client):
        body = client.get('/api/isa').get_json()
        assert body['profiles'] == ['AUTO', 'RV32I', 'RV64I']
        assert body['instructions']['bne'] == 'RV32I'
        assert body['instructions']['ld'] == 'RV64I'
        assert body['instructions']['amoadd.w'] == 'RV32A'
        assert body['instructions']['fadd.d'] == 'RV32D'
        assert 'nop' in body['pseudo_instructions']
        assert body['registers'][2] == 'sp'


class TestErrors:
    """Tests for JSON error handlers."""

    def test_not_found(self, client):
        response = client.get('/api/nothing')
        assert response.status_code == 404
        assert response.get_json()['error'] == 'Not found'
