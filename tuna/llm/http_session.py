#!/usr/bin/env python3
"""Thread-local HTTP session management."""

import threading
from typing import List

import requests


class ThreadLocalSessionManager:
    """One requests.Session per calling thread, all closed by close_all()."""

    def __init__(self, pool_maxsize: int = 1):
        self._thread_local = threading.local()
        self.pool_maxsize = pool_maxsize
        self._lock = threading.Lock()
        self._sessions: List[requests.Session] = []

    def get_session(self) -> requests.Session:
        session = getattr(self._thread_local, 'session', None)
        if session is None:
            session = self._create_session()
            self._thread_local.session = session
            with self._lock:
                self._sessions.append(session)
        return session

    @property
    def session_count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def close_all(self):
        with self._lock:
            sessions, self._sessions = self._sessions, []
            # Threads that held a closed session get a fresh one on next use
            self._thread_local = threading.local()
        for session in sessions:
            session.close()

    def _create_session(self) -> requests.Session:
        session = requests.Session()

        # Retries belong to the executor's RetryPolicy, never to the adapter
        adapter = requests.adapters.HTTPAdapter(
            pool_connections=1,
            pool_maxsize=self.pool_maxsize,
            max_retries=0
        )
        session.mount('https://', adapter)
        session.mount('http://', adapter)

        return session
