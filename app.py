"""Flask app for PageDeck.

Exposes the page workspace over HTTP: upload PDFs, rotate, duplicate,
delete and reorder page slots, then export them merged or split. All state
lives in one in-memory workspace per process; nothing is written to disk.
"""

# ------------------------ All Imports ------------------------
import logging
from io import BytesIO
from typing import Optional

from flask import Flask, jsonify, request, send_file
from werkzeug.exceptions import RequestEntityTooLarge
from werkzeug.utils import secure_filename

from pagedeck.assembly import bundle_pages
from pagedeck.controller import WorkspaceController
from pagedeck.errors import PageDeckError
from pagedeck.settings import Settings, parse_str_env
from pagedeck.workspace import BatchPolicy, Upload

#------------------------ Logging ------------------------
logging.basicConfig(level=parse_str_env('PAGEDECK_LOG_LEVEL', 'INFO').upper())
logger = logging.getLogger(__name__)


def _payload() -> dict:
    """JSON body if there is one, otherwise form fields."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def _int_field(data: dict, *names: str, default=None):
    """Whole-number field; floats, booleans and non-numeric strings are rejected."""
    for name in names:
        if name in data and data[name] not in (None, ''):
            value = data[name]
            if isinstance(value, int) and not isinstance(value, bool):
                return value
            if isinstance(value, str) and value.strip().lstrip('-').isdigit():
                return int(value)
            raise ValueError(f'{name} must be an integer, got {value!r}')
    if default is None:
        raise ValueError(f'missing field: {names[0]}')
    return default


def _pdf_name(name: str, fallback: str) -> str:
    name = secure_filename(name or '') or fallback
    if not name.lower().endswith('.pdf'):
        name += '.pdf'
    return name


#------------------------ Flask App ------------------------
def create_app(settings: Optional[Settings] = None, controller: Optional[WorkspaceController] = None) -> Flask:
    settings = settings or Settings.from_env()
    app = Flask(__name__)
    app.config['MAX_CONTENT_LENGTH'] = settings.max_content_length
    app.config['SECRET_KEY'] = settings.secret_key
    controller = controller or WorkspaceController(settings)
    app.extensions['pagedeck'] = controller
    workspace = controller.workspace

    #------------------------ Error Handling ------------------------
    @app.errorhandler(PageDeckError)
    def handle_pagedeck_error(exc: PageDeckError):
        return jsonify({'error': exc.message or exc.__class__.__name__}), exc.status_code

    @app.errorhandler(RequestEntityTooLarge)
    def handle_too_large(exc):
        return jsonify({'error': 'Upload too large'}), 413

    #------------------------ 0. Workspace State ------------------------
    @app.route('/')
    @app.route('/workspace')
    def index():
        return jsonify(workspace.to_dict())

    #------------------------ 1. Upload ------------------------
    @app.route('/upload', methods=['POST'])
    def upload():
        # Accept 'files' or 'pdfs' field names
        files = request.files.getlist('files') or request.files.getlist('pdfs')
        uploads = []
        for f in files:
            if not f or not f.filename:
                continue
            data = f.read()
            uploads.append(Upload(data=data, name=secure_filename(f.filename) or 'document.pdf', size=len(data)))
        if not uploads:
            return {'error': 'No files uploaded'}, 400

        try:
            policy = BatchPolicy(request.form.get('policy') or settings.batch_policy)
        except ValueError:
            return {'error': 'policy must be "skip" or "abort"'}, 400

        result = controller.upload(uploads, policy)
        body = {
            'added': [source.to_dict() for source in result.added],
            'rejected': [{'name': exc.name, 'error': exc.message} for exc in result.failures],
            'workspace': workspace.to_dict(),
        }
        if not result.added and result.failures:
            body['error'] = 'No valid PDF files uploaded'
            return jsonify(body), 400
        return jsonify(body)

    #------------------------ 2. Page Edits ------------------------
    @app.route('/pages/<page_id>/rotate', methods=['POST'])
    def rotate_page(page_id):
        try:
            delta = _int_field(_payload(), 'delta', default=90)
            page = controller.rotate_page(page_id, delta)
        except ValueError as exc:
            return {'error': str(exc)}, 400
        return {'page': page.to_dict() if page else None}

    @app.route('/pages/<page_id>/duplicate', methods=['POST'])
    def duplicate_page(page_id):
        page = controller.duplicate_page(page_id)
        if page is None:
            return {'error': f'unknown page: {page_id}'}, 404
        return {'page': page.to_dict()}, 201

    @app.route('/pages/<page_id>', methods=['DELETE'])
    def remove_page(page_id):
        controller.remove_page(page_id)
        return {'removed': page_id}

    @app.route('/reorder', methods=['POST'])
    def reorder():
        data = _payload()
        try:
            from_index = _int_field(data, 'from', 'from_index')
            to_index = _int_field(data, 'to', 'to_index')
        except ValueError as exc:
            return {'error': str(exc)}, 400
        controller.reorder(from_index, to_index)
        return jsonify(workspace.to_dict())

    @app.route('/clear', methods=['POST'])
    def clear():
        controller.clear()
        return jsonify(workspace.to_dict())

    #------------------------ 3. Export ------------------------
    @app.route('/merge', methods=['POST'])
    def merge():
        name = _pdf_name(_payload().get('filename'), settings.merge_filename)
        data = controller.merge()
        return send_file(BytesIO(data), as_attachment=True, download_name=name, mimetype='application/pdf')

    @app.route('/split', methods=['POST'])
    def split():
        pages = controller.split()
        resp = send_file(
            BytesIO(bundle_pages(pages)),
            as_attachment=True,
            download_name='pages.zip',
            mimetype='application/zip',
        )
        resp.headers['X-Page-Count'] = str(len(pages))
        return resp

    #------------------------ 4. Thumbnails ------------------------
    @app.route('/thumbs/<page_id>')
    def serve_thumb(page_id):
        image = controller.thumbnail(page_id)
        return send_file(BytesIO(image), mimetype='image/png')

    #------------------------ 5. Insights ------------------------
    @app.route('/insights', methods=['POST'])
    def insights():
        text = controller.analyze(_payload().get('source_id'))
        return {'insights': text}

    return app


#------------------------ Main ------------------------
if __name__ == '__main__':
    settings = Settings.from_env()
    app = create_app(settings)
    logger.info('Starting server on http://%s:%d', settings.bind_host, settings.port)
    try:
        app.run(host=settings.bind_host, port=settings.port, debug=True)
    except OSError:
        logger.exception('Failed to bind server on %s:%d', settings.bind_host, settings.port)
        raise
