# Eventlet monkey patching MUST be first before any other imports
import eventlet
eventlet.monkey_patch()

from confidence_pool import create_app, db, socketio  # noqa: E402
from confidence_pool.models import (  # noqa: E402
    ActivePool,
    AdminAction,
    Dependent,
    Game,
    Participant,
    Pick,
    Pool,
    PoolMember,
)

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "Participant": Participant,
        "Dependent": Dependent,
        "Pool": Pool,
        "ActivePool": ActivePool,
        "PoolMember": PoolMember,
        "Game": Game,
        "Pick": Pick,
        "AdminAction": AdminAction,
    }


if __name__ == "__main__":
    socketio.run(app, host="0.0.0.0", port=5000, debug=True)
