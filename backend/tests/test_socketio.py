from setboard import get_manager, socketio


def events(sio_client, name):
    return [pkt['args'][0] for pkt in sio_client.get_received('/ws') if pkt['name'] == name]


def latest_state(received):
    states = [pkt['args'][0] for pkt in received if pkt['name'] == 'state_update']
    return states[-1]


def test_socket_connect_gets_state(sio_client):
    assert sio_client.is_connected('/ws')
    received = sio_client.get_received('/ws')
    names = [pkt['name'] for pkt in received]
    assert 'connected' in names
    assert latest_state(received)['phase'] == 'setup'


def test_register_assigns_cell(sio_client):
    sio_client.get_received('/ws')  # flush
    sio_client.emit('register', {'instance_id': 'key-0'}, namespace='/ws')
    received = sio_client.get_received('/ws')
    registered = [pkt['args'][0] for pkt in received if pkt['name'] == 'registered']
    assert registered == [{'instance_id': 'key-0', 'position': 0}]
    assert latest_state(received)['registered_instances'] == ['key-0']


def test_register_requires_instance_id(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('register', {}, namespace='/ws')
    assert events(sio_client, 'error')


def test_thirteenth_station_is_refused(sio_client):
    for i in range(12):
        sio_client.emit('register', {'instance_id': f'key-{i}'}, namespace='/ws')
    sio_client.get_received('/ws')
    sio_client.emit('register', {'instance_id': 'key-12'}, namespace='/ws')
    errors = events(sio_client, 'error')
    assert errors and errors[0]['message'] == 'board is full'


def test_press_through_a_round(flask_app, sio_client):
    for i in range(12):
        sio_client.emit('register', {'instance_id': f'key-{i}'}, namespace='/ws')
    manager = get_manager(flask_app)
    assert manager.phase.value == 'playerSelection'

    # a start cell kicks off the countdown; deferred steps run inline in tests
    sio_client.emit('press', {'instance_id': 'key-5'}, namespace='/ws')
    sio_client.emit('release', {'instance_id': 'key-5'}, namespace='/ws')
    assert manager.phase.value == 'live'

    # player 1 sits on cell 0
    sio_client.emit('press', {'instance_id': 'key-0'}, namespace='/ws')
    assert manager.phase.value == 'buzzHeld'
    sio_client.get_received('/ws')
    sio_client.emit('release', {'instance_id': 'key-0'}, namespace='/ws')
    assert latest_state(sio_client.get_received('/ws'))['phase'] == 'selecting'

    sio_client.emit('press', {'instance_id': 'key-1'}, namespace='/ws')
    assert manager.is_card_selected(1)


def test_press_on_foreign_station_is_refused(flask_app, sio_client):
    get_manager(flask_app).register_instance('elsewhere')
    sio_client.get_received('/ws')
    sio_client.emit('press', {'instance_id': 'elsewhere'}, namespace='/ws')
    assert events(sio_client, 'error')


def test_disconnect_releases_stations(flask_app, sio_client):
    other = socketio.test_client(flask_app, namespace='/ws')
    other.emit('register', {'instance_id': 'key-a'}, namespace='/ws')
    other.emit('register', {'instance_id': 'key-b'}, namespace='/ws')
    manager = get_manager(flask_app)
    assert manager.get_instance_count() == 2

    other.disconnect(namespace='/ws')
    assert manager.get_instance_count() == 0
    assert latest_state(sio_client.get_received('/ws'))['registered_instances'] == []


def test_unregister_and_buzzer(flask_app, sio_client):
    sio_client.emit('register', {'instance_id': 'key-0'}, namespace='/ws')
    sio_client.emit('register_buzzer', {'instance_id': 'key-0', 'player_id': 1}, namespace='/ws')
    manager = get_manager(flask_app)
    assert manager.get_player(1).buzzer_instance == 'key-0'

    sio_client.get_received('/ws')
    sio_client.emit('register_buzzer', {'instance_id': 'key-0', 'player_id': 3}, namespace='/ws')
    assert events(sio_client, 'error')

    sio_client.emit('unregister', {'instance_id': 'key-0'}, namespace='/ws')
    assert events(sio_client, 'unregistered') == [{'instance_id': 'key-0'}]
    assert manager.get_instance_count() == 0


def test_ping(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('ping', {'t': 1}, namespace='/ws')
    assert events(sio_client, 'pong') == [{'t': 1}]


def test_station_owned_by_another_connection_is_refused(flask_app, sio_client):
    sio_client.emit('register', {'instance_id': 'key-0'}, namespace='/ws')
    other = socketio.test_client(flask_app, namespace='/ws')
    other.get_received('/ws')
    other.emit('register', {'instance_id': 'key-0'}, namespace='/ws')
    errors = events(other, 'error')
    assert errors and 'another connection' in errors[0]['message']

    # the intruder leaving does not take the station with it
    other.disconnect(namespace='/ws')
    manager = get_manager(flask_app)
    assert manager.get_card_index_for_context('key-0') == 0
    assert manager.get_instance_count() == 1
