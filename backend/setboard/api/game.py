from flask import Blueprint, jsonify, request
from setboard import get_board, get_manager
from setboard.services.games.deck import describe_card, get_theme


game = Blueprint('game', __name__)


def _timers_payload(manager):
    state = manager.get_state()
    return {
        'settings': state.timer_settings.to_dict(),
        'countdown_remaining': manager.get_countdown_remaining(),
        'buzz_hold_remaining': manager.get_buzz_hold_time_remaining(),
        'selection_remaining': manager.get_selection_time_remaining(),
    }


@game.route('/state', methods=['GET'])
def get_game_state():
    manager = get_manager()
    payload = manager.get_state().to_dict()
    # Remaining times so clients can render countdowns
    payload['timers'] = _timers_payload(manager)
    payload['instance_count'] = manager.get_instance_count()
    return jsonify(payload), 200


@game.route('/new', methods=['POST'])
def new_game():
    data = request.get_json(silent=True) or {}
    player_count = data.get('player_count', 1)
    try:
        get_board().new_game(player_count, data.get('theme_id'))
    except ValueError as exc:
        return jsonify({'error': str(exc)}), 400
    return jsonify(get_manager().get_state().to_dict()), 201


@game.route('/timers', methods=['GET'])
def get_timers():
    return jsonify(_timers_payload(get_manager())), 200


@game.route('/timers', methods=['POST'])
def update_timers():
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return jsonify({'error': 'Timer settings are required'}), 400
    try:
        settings = get_manager().update_timer_settings(**data)
    except ValueError as exc:
        return jsonify({'error': str(exc)}), 400
    return jsonify(settings.to_dict()), 200


@game.route('/countdown', methods=['POST'])
def start_countdown():
    manager = get_manager()
    if not manager.start_countdown():
        return jsonify({'error': f'Cannot start the countdown during {manager.phase.value}'}), 409
    return jsonify({'phase': manager.phase.value, 'countdown_remaining': manager.get_countdown_remaining()}), 200


@game.route('/cards/<int:position>', methods=['GET'])
def get_card(position):
    manager = get_manager()
    card = manager.get_card(position)
    if card is None:
        return jsonify({'error': f'No card at position {position}'}), 404
    theme = get_theme(manager.get_state().theme_id)
    return jsonify({
        'position': position,
        'card': card.to_dict(),
        'description': describe_card(card, theme),
        'selected': manager.is_card_selected(position),
        'player_id': manager.get_player_at_position(position),
    }), 200


@game.route('/players/<int:player_id>', methods=['GET'])
def get_player(player_id):
    manager = get_manager()
    player = manager.get_player(player_id)
    if player is None:
        return jsonify({'error': 'Player not found'}), 404
    payload = player.to_dict()
    payload['position'] = manager.get_player_position(player_id)
    return jsonify(payload), 200
