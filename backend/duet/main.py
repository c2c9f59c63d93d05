from flask import Blueprint, jsonify

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Duet puzzle server. Connect a Socket.IO client to /ws.'})


@main.route('/health')
def health():
    return jsonify({'ok': True})
