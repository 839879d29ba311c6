"""Kernel peer-credential queries for AF_UNIX stream sockets.

The identity of the process on the other end of a local socket comes from
the kernel, never from anything the peer sends:

    Linux:       getsockopt(SOL_SOCKET, SO_PEERCRED)  -> struct ucred {pid, uid, gid}
    BSD/macOS:   getsockopt(SOL_LOCAL, LOCAL_PEERCRED) -> struct xucred
                 getsockopt(SOL_LOCAL, LOCAL_PEERPID)  -> pid_t (macOS only)

If neither facility exists the query fails. There is no fallback that
trusts the peer.
"""
from __future__ import annotations

import socket
import struct
from dataclasses import dataclass

UCRED_FORMAT = "3i"          # pid_t, uid_t, gid_t
XUCRED_FORMAT = "IIh16I"     # cr_version, cr_uid, cr_ngroups, cr_groups[16]
PEERPID_FORMAT = "i"

# Values from <sys/un.h> on BSD/macOS. The socket module only exposes
# SOL_LOCAL on some builds.
_SOL_LOCAL = getattr(socket, "SOL_LOCAL", 0)
_LOCAL_PEERCRED = getattr(socket, "LOCAL_PEERCRED", 0x001)
_LOCAL_PEERPID = getattr(socket, "LOCAL_PEERPID", 0x002)

UNKNOWN_PID = -1


class CredentialsUnavailable(OSError):
    """Raised when the platform cannot report peer credentials."""


@dataclass(frozen=True, slots=True)
class PeerCredentials:
    """Raw numeric identity of a connected peer."""
    pid: int
    uid: int
    gid: int


@dataclass(frozen=True, slots=True)
class PeerIdentity:
    """Peer credentials with the uid/gid resolved to names."""
    pid: int
    uid: int
    gid: int
    user: str
    group: str

    def describe(self) -> str:
        return (
            f"{self.user}:{self.group} "
            f"{{pid:{self.pid}, uid:{self.uid}, gid:{self.gid}}}"
        )


def _linux_peercred(sock: socket.socket) -> PeerCredentials:
    raw = sock.getsockopt(
        socket.SOL_SOCKET, socket.SO_PEERCRED, struct.calcsize(UCRED_FORMAT)
    )
    pid, uid, gid = struct.unpack(UCRED_FORMAT, raw)
    return PeerCredentials(pid=pid, uid=uid, gid=gid)


def _bsd_peercred(sock: socket.socket) -> PeerCredentials:
    raw = sock.getsockopt(
        _SOL_LOCAL, _LOCAL_PEERCRED, struct.calcsize(XUCRED_FORMAT)
    )
    _, uid, ngroups, *groups = struct.unpack(XUCRED_FORMAT, raw)
    if ngroups < 1:
        raise CredentialsUnavailable("peer credentials carry no group")
    try:
        pid_raw = sock.getsockopt(
            _SOL_LOCAL, _LOCAL_PEERPID, struct.calcsize(PEERPID_FORMAT)
        )
        (pid,) = struct.unpack(PEERPID_FORMAT, pid_raw)
    except OSError:
        pid = UNKNOWN_PID  # FreeBSD has no LOCAL_PEERPID
    return PeerCredentials(pid=pid, uid=uid, gid=groups[0])


def peer_credentials(sock: socket.socket) -> PeerCredentials:
    """Ask the kernel who is on the other end of ``sock``.

    Raises:
        CredentialsUnavailable: no peer-credential facility on this platform
        OSError: the getsockopt call itself failed
        struct.error: the kernel returned a structure of unexpected size
    """
    if hasattr(socket, "SO_PEERCRED"):
        return _linux_peercred(sock)
    if hasattr(socket, "LOCAL_PEERCRED") or hasattr(socket, "SOL_LOCAL"):
        return _bsd_peercred(sock)
    raise CredentialsUnavailable(
        "no peer credential facility (SO_PEERCRED / LOCAL_PEERCRED)"
    )
