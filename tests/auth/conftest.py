"""Shared fixtures for authentication tests.

A socketpair is the simplest connected AF_UNIX socket: the peer on the
other end is this very test process, so the expected credentials are
os.getpid()/os.getuid()/os.getgid().
"""
from __future__ import annotations

import grp
import os
import pwd
import socket

import pytest


@pytest.fixture()
def unix_pair():
    a, b = socket.socketpair(socket.AF_UNIX, socket.SOCK_STREAM)
    yield a, b
    a.close()
    b.close()


@pytest.fixture()
def own_names() -> tuple[str, str]:
    """User and group names of this process, or skip if the db lacks them."""
    try:
        user = pwd.getpwuid(os.getuid()).pw_name
        group = grp.getgrgid(os.getgid()).gr_name
    except KeyError:
        pytest.skip("test process uid/gid has no passwd/group entry")
    return user, group
