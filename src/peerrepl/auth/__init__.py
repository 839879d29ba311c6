"""Peer authentication: kernel credentials + user/group name resolution."""
from peerrepl.auth.authenticator import (
    AuthenticationError,
    Authenticator,
    lookup_group,
    lookup_user,
)
from peerrepl.auth.credentials import (
    CredentialsUnavailable,
    PeerCredentials,
    PeerIdentity,
    peer_credentials,
)

__all__ = [
    "AuthenticationError",
    "Authenticator",
    "lookup_group",
    "lookup_user",
    "CredentialsUnavailable",
    "PeerCredentials",
    "PeerIdentity",
    "peer_credentials",
]
