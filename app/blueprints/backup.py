"""Backup blueprint - download and restore the full JSON backup."""
from datetime import datetime

from flask import Blueprint, Response, current_app, jsonify, request

from app.database import get_session
from app.exceptions import CorruptBackupError
from app.services import backup_service
from app.signals import export_completed

backup_bp = Blueprint('backup', __name__, url_prefix='/backup')


@backup_bp.route('/', methods=['GET'])
def download() -> Response:
    """Full backup as a JSON attachment. Backups are not counted as exports."""
    session = get_session()
    now = datetime.now()
    document = backup_service.export_state(session, now, current_app.config.get('APP_VERSION'))

    filename = backup_service.default_backup_filename(now)
    current_app.logger.info(
        f"Backup downloaded: {len(document['orders'])} orders, {len(document['catalogs'])} catalogs"
    )
    export_completed.send(current_app._get_current_object(), kind='backup', user=None)
    return Response(
        backup_service.dumps(document),
        mimetype='application/json',
        headers={'Content-Disposition': f'attachment; filename={filename}'}
    )


@backup_bp.route('/restore', methods=['POST'])
def restore() -> Response:
    """
    Replace all data with a backup.

    Accepts the document as the JSON body or as an uploaded ``file``.
    """
    session = get_session()

    upload = request.files.get('file')
    if upload is not None:
        document = backup_service.loads(upload.read())
    else:
        if not request.get_data():
            raise CorruptBackupError('empty request body')
        document = backup_service.loads(request.get_data())

    contents = backup_service.restore_state(session, document)
    metadata = backup_service.read_metadata(document)

    return jsonify({
        'status': 'ok',
        'orders': len(contents.orders),
        'catalogs': len(contents.catalogs),
        'platforms': len(contents.platforms),
        'export_date': metadata.get('export_date'),
        'app_version': metadata.get('app_version'),
    })
