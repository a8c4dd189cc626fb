from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from routers.rooms import rooms_router
from routers.live_sessions import live_sessions_router
from signaling.coordinator import SessionCoordinator
from signaling.registry import Connection
from constants import CORS_ORIGINS, LOG_LEVEL, LOG_FILE
import json
import asyncio
from logging_config import get_logger, setup_logging

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)


async def pump_outbox(websocket: WebSocket, connection: Connection, coordinator: SessionCoordinator):
    """Drain a connection's outbox to its socket until the connection closes.

    A failed send tears the connection down so nothing keeps queueing for a dead socket.
    """
    while True:
        message = await connection.outbox.get()
        if message is None:
            break
        try:
            await websocket.send_text(json.dumps(message))
        except Exception as e:
            logger.warning(f"Error sending {message['event']} to connection {connection.connection_id}: {e}")
            await coordinator.disconnect(connection.connection_id)
            try:
                await websocket.close()
            except Exception as close_error:
                logger.debug(f"Error closing WebSocket for {connection.connection_id}: {close_error}")
            break


async def websocket_endpoint(websocket: WebSocket):
    """Signaling socket. Frames are JSON objects: {"event": "<name>", "data": {...}}."""
    coordinator: SessionCoordinator = websocket.app.state.coordinator
    await websocket.accept()
    connection = coordinator.connect()
    connection_id = connection.connection_id
    logger.info(f"WebSocket connection accepted: {connection_id}")
    sender = asyncio.create_task(pump_outbox(websocket, connection, coordinator))

    try:
        message_count = 0
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(frame.get("code", 1000), frame.get("reason"))
            message_count += 1
            logger.debug(f"Received message #{message_count} from connection {connection_id}")

            data = frame.get("text")
            if data is None:
                logger.warning(f"Dropping binary frame from connection {connection_id}")
                continue

            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                logger.warning(f"Dropping non-JSON frame from connection {connection_id}")
                continue
            if not isinstance(message, dict):
                logger.warning(f"Dropping non-object frame from connection {connection_id}")
                continue

            await coordinator.handle(connection_id, message.get("event"), message.get("data"))
    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected normally for connection {connection_id}")
    except Exception as e:
        logger.error(f"WebSocket error for connection {connection_id}: {e}", exc_info=True)
    finally:
        await coordinator.disconnect(connection_id)
        try:
            await asyncio.wait_for(sender, timeout=1.0)
        except (asyncio.TimeoutError, asyncio.CancelledError):
            sender.cancel()
        except Exception as e:
            logger.debug(f"Outbox pump for {connection_id} ended with error: {e}")


def create_app(coordinator: SessionCoordinator = None) -> FastAPI:
    app = FastAPI(title="TutorArc Relay")

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.coordinator = coordinator or SessionCoordinator()
    app.include_router(rooms_router)
    app.include_router(live_sessions_router)
    app.add_api_websocket_route("/ws", websocket_endpoint)

    logger.info("FastAPI application initialized")
    return app


app = create_app()
