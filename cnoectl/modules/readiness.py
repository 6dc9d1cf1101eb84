"""Blocking waits on Argo CD application health."""
import logging
import time
from typing import Any, Callable, Dict, List, Protocol

from ..config import Config
from ..errors import ReadinessTimeoutError
from .argocd import health_status

logger = logging.getLogger("cnoectl.readiness")

HEALTHY = "Healthy"


class ApplicationSource(Protocol):
    def get(self, name: str) -> Dict[str, Any]: ...

    def list(self) -> List[Dict[str, Any]]: ...


class ReadinessWaiter:
    """Polls Argo CD applications until they report healthy.

    The clock and sleep functions are injectable so the waiter can be
    driven by a fake clock in tests.
    """

    def __init__(
        self,
        applications: ApplicationSource,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        poll_interval: float = None,
    ):
        self.applications = applications
        self.clock = clock
        self.sleep = sleep
        self.poll_interval = poll_interval if poll_interval is not None else Config.APP_POLL_INTERVAL

    def wait_for_application(self, name: str, timeout: float = None) -> None:
        """Block until application ``name`` is Healthy.

        Raises:
            ReadinessTimeoutError: If ``timeout`` seconds pass first
        """
        timeout = Config.ROOT_APP_TIMEOUT if timeout is None else timeout
        logger.info(f"⏳ Waiting for {name} to be healthy...")
        start = self.clock()

        while True:
            try:
                status = health_status(self.applications.get(name))
            except Exception as e:
                logger.debug(f"{name} not readable yet: {e}")
                status = "missing"

            if status == HEALTHY:
                logger.info(f"✅ {name} is now healthy!")
                return

            if self.clock() - start >= timeout:
                raise ReadinessTimeoutError(
                    f"❌ Timed out after {int(timeout)}s waiting for {name} (last status: {status})"
                )
            self.sleep(self.poll_interval)

    def wait_for_application_count(self, minimum: int = 2, timeout: float = None,
                                   interval: float = None) -> bool:
        """Wait until at least ``minimum`` applications exist.

        List errors count as "not yet". Running out of time only logs a
        warning; the caller proceeds to the all-healthy wait either way.
        """
        timeout = Config.APP_COUNT_TIMEOUT if timeout is None else timeout
        interval = Config.APP_COUNT_INTERVAL if interval is None else interval
        start = self.clock()

        while True:
            try:
                count = len(self.applications.list())
            except Exception as e:
                logger.debug(f"Listing applications failed: {e}")
                count = 0

            if count >= minimum:
                return True

            elapsed = self.clock() - start
            if elapsed >= timeout:
                logger.warning(
                    "⚠️ Timeout reached while waiting for applications to be created by the AppSet chart..."
                )
                return False

            logger.info(
                f"⏳ Still waiting for argocd apps from Appset chart to be created on hub cluster... "
                f"({int(elapsed)}s elapsed)"
            )
            self.sleep(interval)

    def wait_for_all_healthy(self, timeout: float = None) -> None:
        """Block until every application in the namespace is Healthy.

        Raises:
            ReadinessTimeoutError: If ``timeout`` seconds pass first
        """
        timeout = Config.ALL_APPS_TIMEOUT if timeout is None else timeout
        logger.info("⏳ Waiting for all Argo CD apps on the hub Cluster to be Healthy... might take up to 30 minutes")
        start = self.clock()
        pending: List[str] = []

        while True:
            try:
                apps = self.applications.list()
                pending = [
                    app.get("metadata", {}).get("name", "?")
                    for app in apps if health_status(app) != HEALTHY
                ]
                if apps and not pending:
                    logger.info("✅ All Argo CD apps are now healthy!")
                    return
            except Exception as e:
                logger.debug(f"Listing applications failed: {e}")

            if self.clock() - start >= timeout:
                raise ReadinessTimeoutError(
                    f"❌ Timed out after {int(timeout)}s waiting for applications: {', '.join(pending) or 'none found'}"
                )
            logger.debug(f"Unhealthy applications: {', '.join(pending)}")
            self.sleep(self.poll_interval)

    def wait_for_apps(self, root_application: str) -> None:
        """Run the three readiness stages in order."""
        self.wait_for_application(root_application)
        self.wait_for_application_count()
        self.wait_for_all_healthy()
