"""Authenticate a freshly accepted connection by its peer credentials.

The trust model is two layers:
  1. Filesystem permissions on the listening socket decide who may connect.
  2. This module decides who *did* connect, using kernel peer credentials,
     and resolves the numeric ids to user and group names.

Every step fails closed. A peer whose credentials cannot be read, or whose
uid/gid has no entry in the user/group database, is rejected and receives
no protocol traffic at all.

Thread safety: Authenticator holds only the two lookup callables. CPython's
pwd/grp modules use the reentrant getpwuid_r/getgrgid_r where available,
so one instance can be shared by every session thread.
"""
from __future__ import annotations

import grp
import pwd
import socket
import struct
from typing import Callable

from peerrepl.auth.credentials import PeerIdentity, peer_credentials

UserLookup = Callable[[int], str]
GroupLookup = Callable[[int], str]


class AuthenticationError(Exception):
    """Raised when a peer cannot be positively identified."""


def lookup_user(uid: int) -> str:
    return pwd.getpwuid(uid).pw_name


def lookup_group(gid: int) -> str:
    return grp.getgrgid(gid).gr_name


class Authenticator:
    """Turns a connected socket into a fully resolved PeerIdentity.

    Args:
        user_lookup: uid -> user name (default: the system password database)
        group_lookup: gid -> group name (default: the system group database)
    """

    def __init__(
        self,
        user_lookup: UserLookup = lookup_user,
        group_lookup: GroupLookup = lookup_group,
    ) -> None:
        self._user_lookup = user_lookup
        self._group_lookup = group_lookup

    def authenticate(self, sock: socket.socket) -> PeerIdentity:
        """Identify the peer of ``sock``.

        Raises:
            AuthenticationError: on any credential or name lookup failure.
                No partially filled identity is ever returned.
        """
        try:
            creds = peer_credentials(sock)
        except (OSError, struct.error) as exc:
            raise AuthenticationError(f"peer credential query failed: {exc}") from exc

        user = self._resolve(self._user_lookup, creds.uid, "uid")
        group = self._resolve(self._group_lookup, creds.gid, "gid")
        return PeerIdentity(
            pid=creds.pid,
            uid=creds.uid,
            gid=creds.gid,
            user=user,
            group=group,
        )

    @staticmethod
    def _resolve(lookup: Callable[[int], str], ident: int, kind: str) -> str:
        try:
            name = lookup(ident)
        except (KeyError, OSError, OverflowError) as exc:
            raise AuthenticationError(f"no entry for {kind} {ident}: {exc}") from exc
        if not name:
            raise AuthenticationError(f"empty name for {kind} {ident}")
        return name
