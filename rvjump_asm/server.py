"""
RVJump Assembler - Flask Backend

Exposes the assembler over HTTP for the game front end. Source can be sent as
an uploaded file, as JSON, or as a plain text body.
"""

import base64
import logging
import os

from flask import Flask, jsonify, request
from werkzeug.utils import secure_filename

from .api import INPUT_ERROR_LINE, failing_line_for, release
from .assembler import Assembler
from .config import AssemblerConfig
from .encoder import IsaProfile
from .errors import AssemblerError, ConfigError
from .instructions import INSTRUCTIONS
from .pseudo import PSEUDO_INSTRUCTIONS
from .registers import get_register_name

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config['MAX_CONTENT_LENGTH'] = 1 * 1024 * 1024  # 1MB max source
app.config['DEBUG'] = os.environ.get('FLASK_DEBUG', 'false').lower() == 'true'


def error_response(error: str, message: str, status: int = 400, **extra) -> tuple:
    """Create a standardized error response."""
    body = {'error': error, 'message': message}
    body.update(extra)
    return jsonify(body), status


def read_request_source():
    """
    Pull assembly source and option overrides out of the current request.

    Returns:
        (source, options) where source is str or raw bytes
    """
    if 'file' in request.files:
        upload = request.files['file']
        logger.debug("Assembling upload %s", secure_filename(upload.filename or '') or '<unnamed>')
        return upload.read(), request.form.to_dict()

    if request.is_json:
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict) or 'source' not in payload:
            return None, {}
        options = {k: v for k, v in payload.items() if k != 'source'}
        return payload['source'], options

    data = request.get_data()
    return (data if data else None), request.args.to_dict()


def build_config(options: dict) -> AssemblerConfig:
    """Build an assembler configuration from request options."""
    overrides = {}
    if options.get('isa'):
        overrides['isa'] = options['isa']
    if options.get('branch_offsets'):
        overrides['branch_offsets'] = options['branch_offsets']
    return AssemblerConfig(**overrides)


@app.after_request
def add_cors_headers(response):
    """Add CORS headers to all responses for the browser build of the game."""
    response.headers['Access-Control-Allow-Origin'] = '*'
    response.headers['Access-Control-Allow-Methods'] = 'GET, POST, OPTIONS'
    response.headers['Access-Control-Allow-Headers'] = 'Content-Type'
    return response


@app.errorhandler(400)
def bad_request(error):
    return error_response('Bad request', str(error.description), 400)


@app.errorhandler(404)
def not_found(error):
    return error_response('Not found', str(error.description), 404)


@app.errorhandler(413)
def too_large(error):
    return error_response('Source too large', str(error.description), 413)


@app.errorhandler(500)
def internal_error(error):
    return error_response('Internal server error', str(error.description), 500)


@app.route('/api/assemble', methods=['POST', 'OPTIONS'])
def assemble_source():
    """Assemble a program and return its bytes."""
    if request.method == 'OPTIONS':
        return '', 204

    source, options = read_request_source()
    if source is None:
        return error_response(
            'No source provided',
            'Send a file field, a JSON body with "source", or a text body'
        )
    if not isinstance(source, (str, bytes)):
        return error_response('Invalid source', '"source" must be a string')

    try:
        config = build_config(options)
    except ConfigError as e:
        return error_response('Invalid options', str(e))

    try:
        program = Assembler(config).assemble_string(source)
    except AssemblerError as e:
        failing_line = failing_line_for(e)
        logger.debug("Assembly failed (failing_line %d): %s", failing_line, e)
        if failing_line == INPUT_ERROR_LINE:
            return error_response('Unreadable source', e.reason, 400, failing_line=failing_line)
        return error_response(
            'Assembly failed',
            e.reason,
            422,
            failing_line=failing_line,
            line=e.line_num,
            text=e.line_text,
        )

    try:
        return jsonify({
            'success': True,
            'failing_line': 0,
            'size': len(program),
            'isa': config.isa.value,
            'hex': program.hex_words(),
            'data': base64.b64encode(program.data).decode('ascii'),
        })
    finally:
        release(program)


@app.route('/api/isa', methods=['GET'])
def get_isa():
    """List the supported profiles, instructions, pseudo-instructions and registers."""
    return jsonify({
        'profiles': [p.value for p in IsaProfile],
        'instructions': {
            mnemonic: instr.isa for mnemonic, instr in INSTRUCTIONS.items()
        },
        'pseudo_instructions': sorted(PSEUDO_INSTRUCTIONS),
        'registers': [get_register_name(i) for i in range(32)],
    })


def main():
    port = int(os.environ.get('PORT', 5050))
    debug = os.environ.get('FLASK_DEBUG', 'false').lower() == 'true'

    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO)
    logger.info("Starting RVJump assembler service on port %d (debug=%s)", port, debug)

    app.run(host='0.0.0.0', port=port, debug=debug)


if __name__ == '__main__':
    main()
