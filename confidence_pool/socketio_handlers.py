"""
SocketIO Event Handlers for live standings

Clients subscribe to a pool room and get a standings_updated event whenever
a result is recorded or picks change in that pool.
"""

import logging

from flask import request
from flask_login import current_user
from flask_socketio import disconnect, emit, join_room, leave_room

from confidence_pool import db, socketio
from confidence_pool.models import Pool

logger = logging.getLogger(__name__)

NAMESPACE = "/standings"

# Track connected clients and their pool rooms
connected_clients = {}


def pool_room(pool_id):
    return f"pool_{pool_id}"


@socketio.on("connect", namespace=NAMESPACE)
def on_connect():
    """Handle client connection to the standings namespace"""
    participant_id = current_user.id if current_user.is_authenticated else None
    client_id = request.sid

    logger.info(f"Client connected to {NAMESPACE}: {client_id} (participant: {participant_id})")
    connected_clients[client_id] = {"participant_id": participant_id, "rooms": set()}


@socketio.on("disconnect", namespace=NAMESPACE)
def on_disconnect(*args):
    """Handle client disconnection from the standings namespace"""
    client = connected_clients.pop(request.sid, None)
    if client:
        logger.info(
            f"Client disconnected from {NAMESPACE}: {request.sid} "
            f"(participant: {client['participant_id']})"
        )


@socketio.on("subscribe_pool", namespace=NAMESPACE)
def on_subscribe_pool(data):
    """Join a pool's room; only pool members may listen"""
    if not current_user.is_authenticated:
        disconnect()
        return

    client_id = request.sid
    pool_id = (data or {}).get("pool_id")
    pool = db.session.get(Pool, pool_id) if pool_id else None

    if pool is None or not pool.is_member(current_user.id):
        emit("subscription_error", {"pool_id": pool_id, "message": "Not a member of this pool"})
        return

    room = pool_room(pool.id)
    client = connected_clients.setdefault(
        client_id, {"participant_id": current_user.id, "rooms": set()}
    )
    if room in client["rooms"]:
        return

    client["rooms"].add(room)
    join_room(room)
    emit("subscribed", {"pool_id": pool.id})
    logger.debug(f"Client {client_id} subscribed to pool {pool.id}")


@socketio.on("unsubscribe_pool", namespace=NAMESPACE)
def on_unsubscribe_pool(data):
    client_id = request.sid
    pool_id = (data or {}).get("pool_id")
    if not pool_id:
        return

    room = pool_room(pool_id)
    if client_id in connected_clients:
        connected_clients[client_id]["rooms"].discard(room)
    leave_room(room)
    logger.debug(f"Client {client_id} unsubscribed from pool {pool_id}")


# Broadcast functions (called from game result handlers and pick writes)
def broadcast_standings_update(pool_id, reason, **payload):
    """Tell clients watching a pool that its standings changed"""
    try:
        socketio.emit(
            "standings_updated",
            {"pool_id": pool_id, "reason": reason, **payload},
            to=pool_room(pool_id),
            namespace=NAMESPACE,
        )
        logger.debug(f"Broadcasted standings update for pool {pool_id} ({reason})")
    except Exception as e:
        # Live updates are best effort; the write already committed
        logger.error(f"Error broadcasting standings update for pool {pool_id}: {e}")
