"""Per-project cache of authenticated identity-platform clients.

Building a Firebase app from a service-account certificate is expensive, so
the registry keeps one ``firebase_admin.App`` per project id and hands the
same instance to every request for that project.

Usage:
    registry = SessionRegistry(store)
    with registry.lease("acme") as fb_app:
        auth.import_users(records, app=fb_app)
"""
from __future__ import annotations
import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional

import firebase_admin
from firebase_admin import credentials

from .credential_store import CredentialStore, validate_project_id
from .exceptions import CredentialFormatError

logger = logging.getLogger(__name__)

SESSION_NAME_PREFIX = "fb-"
# Never occurs in a project id, so generation names cannot collide
GENERATION_SEPARATOR = "#"


def session_name(project_id: str, generation: int = 1) -> str:
    """Name under which a project's app is registered with firebase_admin.

    Apps rebuilt after an invalidation get a generation suffix.
    """
    name = f"{SESSION_NAME_PREFIX}{project_id}"
    if generation > 1:
        name = f"{name}{GENERATION_SEPARATOR}{generation}"
    return name


def default_app_options(project_id: str) -> Dict[str, Any]:
    """App options scoped to a project's endpoints."""
    return {
        "projectId": project_id,
        "databaseURL": f"https://{project_id}.firebaseio.com",
    }


class SessionRegistry:
    """Keyed registry of firebase_admin apps, one per project id.

    Look-up-or-construct runs under a per-project lock, so two concurrent
    first requests for the same project build a single app. Entries live for
    the process lifetime unless :meth:`invalidate` is called (the credential
    upload route does so after overwriting a project's key).

    Callers that use an app across several SDK calls hold it through
    :meth:`lease`. An invalidated app stays registered with the SDK until
    its last lease is released, and its replacement is built under the next
    generation name so both can coexist.
    """

    def __init__(
        self,
        store: CredentialStore,
        app_options_factory: Optional[Callable[[str], Dict[str, Any]]] = None,
    ):
        self.store = store
        self.app_options_factory = app_options_factory or default_app_options
        self._apps: Dict[str, firebase_admin.App] = {}
        self._generations: Dict[str, int] = {}
        self._leases: Dict[str, int] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def __contains__(self, project_id: str) -> bool:
        return project_id in self._apps

    def __len__(self) -> int:
        return len(self._apps)

    def _lock_for(self, project_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(project_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[project_id] = lock
            return lock

    def get(self, project_id: str) -> firebase_admin.App:
        """Return the cached app for a project, building it on first use.

        Raises:
            CredentialNotFoundError: No credential file stored for the project
            CredentialFormatError: Stored document is not a usable certificate
        """
        project_id = validate_project_id(project_id)
        fb_app = self._apps.get(project_id)
        if fb_app is not None:
            return fb_app

        with self._lock_for(project_id):
            return self._current(project_id)

    @contextmanager
    def lease(self, project_id: str) -> Iterator[firebase_admin.App]:
        """Hold a project's app for the duration of the block.

        The app yielded is not deleted by a concurrent :meth:`invalidate`
        until the block exits.
        """
        project_id = validate_project_id(project_id)
        with self._lock_for(project_id):
            fb_app = self._current(project_id)
            self._leases[fb_app.name] = self._leases.get(fb_app.name, 0) + 1
        try:
            yield fb_app
        finally:
            self._release(project_id, fb_app)

    def leases(self, project_id: str) -> int:
        """Number of open leases on the project's current app."""
        fb_app = self._apps.get(project_id)
        return self._leases.get(fb_app.name, 0) if fb_app is not None else 0

    def _current(self, project_id: str) -> firebase_admin.App:
        # Caller holds the project lock
        fb_app = self._apps.get(project_id)
        if fb_app is None:
            fb_app = self._create(project_id)
            self._apps[project_id] = fb_app
        return fb_app

    def _release(self, project_id: str, fb_app: firebase_admin.App) -> None:
        with self._lock_for(project_id):
            remaining = self._leases.get(fb_app.name, 0) - 1
            if remaining > 0:
                self._leases[fb_app.name] = remaining
                return
            self._leases.pop(fb_app.name, None)
            if self._apps.get(project_id) is not fb_app:
                firebase_admin.delete_app(fb_app)
                logger.info("Deleted retired firebase app %s", fb_app.name)

    def _create(self, project_id: str) -> firebase_admin.App:
        name = session_name(project_id, self._generations.get(project_id, 1))

        # An app registered with the SDK outside this registry is adopted as-is
        try:
            existing = firebase_admin.get_app(name)
        except ValueError:
            existing = None
        if existing is not None:
            logger.info("Reusing firebase app %s already known to the SDK", name)
            return existing

        document = self.store.load(project_id)
        try:
            certificate = credentials.Certificate(document)
        except ValueError as exc:
            raise CredentialFormatError(f"Invalid service account for project {project_id}: {exc}")

        fb_app = firebase_admin.initialize_app(
            certificate,
            self.app_options_factory(project_id),
            name=name,
        )
        logger.info("Initialized firebase app %s", name)
        return fb_app

    def invalidate(self, project_id: str) -> bool:
        """Drop the cached app for a project so the next use rebuilds it.

        The dropped app is deleted right away when nothing holds a lease on
        it, otherwise when its last lease is released.

        Returns:
            True if an app was cached and removed, False otherwise
        """
        project_id = validate_project_id(project_id)
        with self._lock_for(project_id):
            fb_app = self._apps.pop(project_id, None)
            if fb_app is None:
                return False
            self._generations[project_id] = self._generations.get(project_id, 1) + 1
            if self._leases.get(fb_app.name):
                logger.info("Retiring firebase app %s once in-flight imports finish", fb_app.name)
                return True
            firebase_admin.delete_app(fb_app)
        logger.info("Invalidated firebase app %s", fb_app.name)
        return True
