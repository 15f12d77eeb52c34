"""Session timer blueprint - live session stopwatch."""
from flask import Blueprint, Response, jsonify

from app.database import get_session
from app.services import timer_service

timer_bp = Blueprint('timer', __name__, url_prefix='/timer')


@timer_bp.route('/', methods=['GET'])
def show() -> Response:
    session = get_session()
    return jsonify(timer_service.get_timer(session).to_dict())


@timer_bp.route('/start', methods=['POST'])
def start() -> Response:
    return jsonify(timer_service.start_timer(get_session()).to_dict())


@timer_bp.route('/pause', methods=['POST'])
def pause() -> Response:
    return jsonify(timer_service.pause_timer(get_session()).to_dict())


@timer_bp.route('/resume', methods=['POST'])
def resume() -> Response:
    return jsonify(timer_service.resume_timer(get_session()).to_dict())


@timer_bp.route('/reset', methods=['POST'])
def reset() -> Response:
    return jsonify(timer_service.reset_timer(get_session()).to_dict())
