"""
tally — an owner-gated counter plus an auto-keyed record collection over a
pluggable key–value store.

Quick start
-----------
>>> from tally import LocalHost, open_kv
>>> host = LocalHost(open_kv("memory://"))
>>> host.instantiate("alice", {"count": 17}).attribute("owner")
'alice'
>>> host.execute("bob", {"add": {"number": 4}}).attribute("new_key")
'0'
>>> host.query({"get_count": {}})
{'count': 1}
"""

from .db import open_kv
from .errors import TallyError
from .host import LocalHost, MessageInfo
from .version import __version__

__all__ = ["LocalHost", "MessageInfo", "TallyError", "open_kv", "__version__"]
