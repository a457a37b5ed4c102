"""
Engine-wide constants.
"""

# Version of the persisted session layout. Sessions carrying any other
# version are rejected with a SessionError.
SESSION_VERSION = 0

DEFAULT_PREFIX = "form:"

# Events a FormSet emits to its subscribers.
EVENT_QUERY = "query"
EVENT_COMPLETE = "complete"
