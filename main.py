"""Entry point for the resibox tracking service."""
import logging
import signal
import sys

from resibox.api.server import APIServer
from resibox.core.config import Settings
from resibox.core.state import TrackerState
from resibox.database.local_store import LocalTreeStore
from resibox.drivers.firebase_store import FirebaseRestStore
from resibox.interfaces.store_interface import IRemoteStore
from resibox.services.hardware_manager import HardwareManager
from resibox.services.notifier import NotificationCenter
from resibox.services.reconciler import build_reconciler
from resibox.services.submission import SubmissionService

logger = logging.getLogger("resibox")

# Global references for shutdown
hardware_manager = None
reconciler = None
submission = None
store = None


def build_store(settings: Settings) -> IRemoteStore:
    """Create the store backend named by STORE_BACKEND."""
    if settings.STORE_BACKEND == "firebase":
        return FirebaseRestStore(
            settings.FIREBASE_URL,
            auth_token=settings.FIREBASE_AUTH,
            timeout=settings.STORE_TIMEOUT_S,
        )
    return LocalTreeStore(settings.LOCAL_DB_URL)


def shutdown() -> None:
    """Stop background work in reverse start order."""
    if reconciler:
        reconciler.stop()
    if hardware_manager:
        hardware_manager.shutdown()
    if submission:
        submission.shutdown()
    if store:
        store.close()


def signal_handler(sig, frame):
    """Handle Ctrl+C gracefully."""
    logger.info("Shutdown signal received. Stopping services...")
    shutdown()
    sys.exit(0)


def main():
    global hardware_manager, reconciler, submission, store

    # 1. Load Configuration
    try:
        settings = Settings.load_from_file()
    except Exception as e:
        print(f"❌ Failed to load configuration: {e}")
        sys.exit(1)

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    logger.info(
        f"Configuration loaded. (Store: {settings.STORE_BACKEND}, "
        f"Mode: {settings.RECONCILE_MODE}, Sim Mode: {settings.SIMULATION_MODE})"
    )

    # 2. Initialize State & Store
    try:
        state = TrackerState()
        store = build_store(settings)
        notifier = NotificationCenter()
        submission = SubmissionService(store, state)
        logger.info("State and store initialized.")
    except Exception as e:
        logger.error(f"Failed to initialize state/store: {e}")
        sys.exit(1)

    # 3. Initialize Hardware
    if settings.RECONCILE_MODE == "unlock":
        hardware_manager = HardwareManager(settings, store)
        status = hardware_manager.start_all_drivers()
        logger.info(f"Hardware Status: Lock={status['lock']}, Bridge={status['bridge']}")

    # 4. Start Reconciliation Loop
    reconciler = build_reconciler(
        settings.RECONCILE_MODE,
        store,
        state,
        notifier,
        interval_s=settings.POLL_INTERVAL_S,
        unlock_window_s=settings.UNLOCK_WINDOW_S,
    )
    reconciler.start()

    # 5. Start API Server
    try:
        api_server = APIServer(
            state,
            submission,
            notifier,
            hardware_manager,
            submit_timeout_s=settings.STORE_TIMEOUT_S + 5,
        )
        signal.signal(signal.SIGINT, signal_handler)

        logger.info(f"Starting Server on {settings.API_HOST}:{settings.API_PORT}")
        api_server.run(host=settings.API_HOST, port=settings.API_PORT, debug=False)
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception as e:
        logger.error(f"Server error: {e}")
    finally:
        shutdown()
        logger.info("Shutdown complete")


if __name__ == "__main__":
    main()
