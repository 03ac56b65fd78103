from flask import Blueprint, jsonify
from setboard import get_manager

main = Blueprint('main', __name__)


@main.route('/')
def index():
    manager = get_manager()
    return jsonify({
        'message': 'Set board server is running.',
        'phase': manager.phase.value,
        'instances': manager.get_instance_count(),
    })
