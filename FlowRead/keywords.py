"""
Ordered, case-insensitive storage for TEXT segment keywords.

"""

import collections.abc

class KeywordStore(collections.abc.Mapping):
    """
    Insertion-ordered mapping of TEXT keywords to their values.

    Keyword lookup is case-insensitive, as required by the FCS standards
    (e.g. ``store['$par']`` and ``store['$PAR']`` are the same entry),
    while iteration yields keywords with their original case and in the
    order in which they were added.

    Entries are kept in a list, and a secondary index maps the upper-case
    form of each keyword to its position in that list. If a keyword is
    added more than once, the first value is kept.

    Parameters
    ----------
    items : iterable of (str, str) tuples, or mapping, optional
        Initial keyword-value entries.

    Examples
    --------
    >>> store = KeywordStore([('$PAR', '2'), ('$P1N', 'FSC-A')])
    >>> store['$p1n']
    'FSC-A'
    >>> list(store)
    ['$PAR', '$P1N']

    """
    def __init__(self, items=()):
        self._entries = []
        self._index = {}
        if isinstance(items, collections.abc.Mapping):
            items = items.items()
        for key, value in items:
            self.add(key, value)

    @staticmethod
    def _fold(key):
        return key.upper()

    def add(self, key, value):
        """
        Add a keyword-value entry.

        Parameters
        ----------
        key : str
            Keyword. Its case is preserved for iteration and display.
        value : str
            Keyword value.

        Returns
        -------
        bool
            True if the entry was added, False if `key` was already present
            (regardless of case), in which case the stored value is kept.

        """
        folded = self._fold(key)
        if folded in self._index:
            return False
        self._index[folded] = len(self._entries)
        self._entries.append((key, value))
        return True

    def merge(self, other):
        """
        Add all entries of another keyword mapping.

        Entries already present are kept.

        Returns
        -------
        list of str
            Keywords from `other` that were ignored because they were
            already present.

        """
        return [key for key, value in other.items()
                if not self.add(key, value)]

    def key_case(self, key):
        """
        Return `key` with the case it was stored with.

        """
        try:
            return self._entries[self._index[self._fold(key)]][0]
        except (KeyError, AttributeError):
            raise KeyError(key)

    def __getitem__(self, key):
        try:
            position = self._index[self._fold(key)]
        except (KeyError, AttributeError):
            raise KeyError(key)
        return self._entries[position][1]

    def __contains__(self, key):
        try:
            return self._fold(key) in self._index
        except AttributeError:
            return False

    def __iter__(self):
        return (key for key, value in self._entries)

    def __len__(self):
        return len(self._entries)

    def __repr__(self):
        return '{0}({1!r})'.format(self.__class__.__name__, self._entries)
