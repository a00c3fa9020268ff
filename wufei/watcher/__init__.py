"""Membership watcher: admits newly created pods into the tail set.

Submodules
----------
events     -- parse_created_pod: pod name extraction from creation events.
backoff    -- ExponentialBackoff: reconnect delays for the event watch.
membership -- MembershipWatcher: watch loop, health gate, admission.
"""

from wufei.watcher.backoff import ExponentialBackoff
from wufei.watcher.events import parse_created_pod
from wufei.watcher.membership import MembershipWatcher

__all__ = ["ExponentialBackoff", "MembershipWatcher", "parse_created_pod"]
