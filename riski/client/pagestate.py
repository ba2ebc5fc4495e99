"""
Page state: the key/value store shared by every widget on one page.

Widgets write into it (dropdowns, inputs, lookups) and displays read
from it. Every mutation that actually changes something fires exactly
one change notification; a mutation that changes nothing fires none.

Two subsets are tracked:

    user choices  keys set through user interaction. They are mirrored
                  into the URL fragment (#k=v&k2=v2) so the page can be
                  shared, replacing the current history entry.
    managed keys  owned by a document element and deleted when that
                  element is removed (see riski.client.document).

State is transient: it lives as long as the page and is never stored.

IMPORTANT: No unicode characters allowed (Windows charmap constraint).
"""

import logging
from urllib.parse import quote, unquote, urlsplit, urlunsplit

from riski.errors import NotSetError
from riski.text import format_scalar, is_scalar

log = logging.getLogger(__name__)

# encodeURIComponent leaves these unescaped besides letters, digits and -_.~
_URI_COMPONENT_SAFE = "!~*'()"


def encode_component(value):
    return quote(format_scalar(value), safe=_URI_COMPONENT_SAFE)


def same_value(a, b):
    """
    Strict equality: 1, "1" and True are all different values.

    int and float are both numbers, so 1 and 1.0 are the same value.
    """
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return a == b
    return type(a) is type(b) and a == b


def parse_hash_state(hash_string):
    """
    Parse a URL fragment ('#k=v&k2=v2') into a dict.

    Entries without '=' and entries with an empty key are skipped.
    Values may contain '='; only the first one separates key from value.
    """
    result = {}
    if not hash_string:
        return result
    content = hash_string[1:] if hash_string.startswith("#") else hash_string
    for pair in content.split("&"):
        key, sep, value = pair.partition("=")
        if not sep:
            continue
        key = unquote(key)
        if not key:
            continue
        result[key] = unquote(value)
    return result


class Location:
    """
    The page URL and its history entry.

    Only history replacement is modelled: the fragment can change without
    adding a history entry.

    Parameters
    ----------
    url : str
        Current URL, fragment included.
    """

    def __init__(self, url="http://localhost/"):
        parts = urlsplit(url)
        self.base = urlunsplit(parts._replace(fragment=""))
        self.hash = "#" + parts.fragment if parts.fragment else ""
        self.history_length = 1
        self.replacements = 0

    @property
    def href(self):
        return self.base + self.hash

    def replace_hash(self, hash_string):
        """history.replaceState: change the fragment, keep history length."""
        self.hash = hash_string
        self.replacements += 1


class PageState:
    """
    Key/value state for one page.

    Parameters
    ----------
    location : Location, optional
        URL the user-choice fragment is written to.
    """

    def __init__(self, location=None):
        self.location = location if location is not None else Location()
        self._data = {}
        self._user_choices = {}
        self._listeners = []

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def has(self, name):
        return name in self._data

    def get(self, name):
        """
        Value of name.

        Raises
        ------
        NotSetError
            If name is not set.
        """
        if name not in self._data:
            raise NotSetError(name)
        return self._data[name]

    def get_all(self):
        """Snapshot copy of the whole state."""
        return dict(self._data)

    def is_user_choice(self, name):
        return name in self._user_choices

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def subscribe(self, callback):
        """
        Call callback(kind, payload) after every effective change.

        kind is "set" (payload: the attempted name -> value map) or
        "delete" (payload: the attempted names). Returns a function that
        unsubscribes.
        """
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self, kind, payload):
        for callback in list(self._listeners):
            try:
                callback(kind, payload)
            except Exception:
                log.exception("pagestate listener failed on %s", kind)

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def _valid_pairs(self, pairs):
        valid = {}
        for name, value in pairs.items():
            if not isinstance(name, str) or not name.strip():
                log.error("pagestate set: invalid name %r", name)
                continue
            if value is None or not is_scalar(value):
                log.error("pagestate set: invalid value for %s: %r", name, value)
                continue
            valid[name] = value
        return valid

    def set(self, pairs):
        """
        Merge pairs into the state.

        Fires one "set" notification carrying the attempted pairs if at
        least one value actually changed. Returns True in that case.
        """
        if not isinstance(pairs, dict):
            log.error("pagestate set: invalid pairs %r", pairs)
            return False
        valid = self._valid_pairs(pairs)
        if not valid:
            return False

        log.debug("pagestate set %s", valid)
        changed = False
        for name, value in valid.items():
            if name not in self._data or not same_value(self._data[name], value):
                self._data[name] = value
                changed = True
        if changed:
            self._notify("set", valid)
        return changed

    def delete(self, names):
        """
        Delete names from the state.

        Fires one "delete" notification if at least one name existed.
        Deleting a user choice rewrites the URL fragment. Returns True if
        anything was deleted.
        """
        if isinstance(names, str):
            names = [names]
        names = list(names)
        if not names:
            return False

        log.debug("pagestate delete %s", names)
        changed = False
        choice_deleted = False
        for name in names:
            if not isinstance(name, str) or not name.strip():
                log.error("pagestate delete: invalid name %r", name)
                continue
            if name in self._data:
                del self._data[name]
                changed = True
                if self._user_choices.pop(name, False):
                    choice_deleted = True

        if choice_deleted:
            self._update_hash()
        if changed:
            self._notify("delete", names)
        return changed

    def set_user_choice(self, name, value):
        return self.set_user_choices({name: value})

    def set_user_choices(self, pairs):
        """
        set() plus mark the keys as user choices and rewrite the fragment.
        """
        if not isinstance(pairs, dict):
            log.error("pagestate set_user_choices: invalid pairs %r", pairs)
            return False
        valid = self._valid_pairs(pairs)
        if not valid:
            return False
        for name in valid:
            self._user_choices[name] = True
        changed = self.set(valid)
        self._update_hash()
        return changed

    # ------------------------------------------------------------------
    # URL fragment
    # ------------------------------------------------------------------

    def hash_string(self):
        """'#k=v&k2=v2' for the user choices currently set, or ''."""
        pairs = [
            "{}={}".format(encode_component(name),
                           encode_component(self._data[name]))
            for name in self._user_choices
            if name in self._data and is_scalar(self._data[name])
        ]
        return "#" + "&".join(pairs) if pairs else ""

    def _update_hash(self):
        self.location.replace_hash(self.hash_string())

    def get_shareable_url(self):
        """Current URL with the user-choice fragment."""
        return self.location.base + self.hash_string()

    def load_from_hash(self):
        """
        Copy the URL fragment into the state as user choices.

        Fragment values overwrite existing values. Called once while the
        page is set up, before any widget subscribes; no notification is
        fired.
        """
        values = parse_hash_state(self.location.hash)
        for name, value in values.items():
            self._data[name] = value
            self._user_choices[name] = True
        return values
