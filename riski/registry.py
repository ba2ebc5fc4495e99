"""
Per-page model registry and reference lookup.

Pass 1 of the page compiler registers every model declared on the page
here. Pass 2 then looks models up by reference, so a display may refer
to a model declared further down the page.

A reference is tried, in order, as:

    1. the literal reference      ("Risks:Driving")
    2. "<page>:<reference>"       ("MyPage:Driving")
    3. "<page>/Data:<reference>"  ("MyPage/Data:Driving")

The first existing match wins. The page registry is consulted before
the store, each with the same precedence. Table titles use the same
precedence against the store's tables.
"""

from riski.config import DATA_SUBPAGE
from riski.errors import ConfigurationError


def reference_candidates(reference, page_id):
    """Qualified names to try for reference, in precedence order."""
    return [
        reference,
        "{}:{}".format(page_id, reference),
        "{}/{}:{}".format(page_id, DATA_SUBPAGE, reference),
    ]


class ModelRegistry:
    """
    Models visible while compiling one page.

    Parameters
    ----------
    page_id : str
        The page being compiled.
    store : RiskiStore, optional
        Storage fallback for models declared on other pages.
    """

    def __init__(self, page_id, store=None):
        self.page_id = page_id
        self.store = store
        self._models = {}

    def register(self, model):
        """
        Register a model declared on the page.

        Raises
        ------
        ConfigurationError
            If the page already declared a model with this name.
        """
        if model.key in self._models:
            raise ConfigurationError(
                "RiskModel '{}' is declared twice on this page".format(model.name))
        self._models[model.key] = model

    def models(self):
        """Models registered so far, in declaration order."""
        return list(self._models.values())

    def find(self, reference):
        """The model for reference, or None."""
        candidates = reference_candidates(reference, self.page_id)
        for key in candidates:
            if key in self._models:
                return self._models[key]
        if self.store is not None:
            for key in candidates:
                model = self.store.find_model(key)
                if model is not None:
                    return model
        return None

    def lookup(self, reference):
        """
        The model for reference.

        Raises
        ------
        ConfigurationError
            If no candidate exists on the page or in the store.
        """
        model = self.find(reference)
        if model is None:
            raise ConfigurationError(
                "RiskModel '{}' not found".format(reference))
        return model

    def lookup_table(self, reference):
        """
        Rows of the table for reference.

        Raises
        ------
        ConfigurationError
            If there is no store or no matching table.
        """
        if self.store is not None:
            for title in reference_candidates(reference, self.page_id):
                rows = self.store.get_table(title)
                if rows is not None:
                    return rows
        raise ConfigurationError("table '{}' not found".format(reference))


def find_stored_model(store, reference, page_id):
    """Store-only lookup with the same precedence, for the HTTP services."""
    for key in reference_candidates(reference, page_id):
        model = store.find_model(key)
        if model is not None:
            return model
    return None

