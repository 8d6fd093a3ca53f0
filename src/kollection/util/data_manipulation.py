import logging
from typing import Any

logger = logging.getLogger(__name__)


def extract_property(data: Any, prop_list: str, fail_on_missing=False, default=None) -> Any:
    """Extract a property from a nested data structure using dot notation.

    Args:
        data (Any): The data structure to extract the property from
        prop_list (str): The property to extract, using dot notation for nested properties.
            The special character '_' can be used as a passthrough in dotted paths.
            For example, "X._" is equivalent to "X", and "X._.1" is equivalent to "X.1".
        fail_on_missing (bool): If True, raise an exception if the property is not found.
            If False, return default if the property is not found.
    """
    if prop_list == "_":
        return data
    of_interest = data
    for prop_name in prop_list.split("."):
        if prop_name == "_":
            continue
        if isinstance(of_interest, dict):
            if prop_name in of_interest:
                of_interest = of_interest[prop_name]
                continue
        elif isinstance(of_interest, (list, tuple)):
            if prop_name.isdigit() and 0 <= int(prop_name) < len(of_interest):
                of_interest = of_interest[int(prop_name)]
                continue
        elif hasattr(of_interest, prop_name):
            of_interest = getattr(of_interest, prop_name)
            continue
        if fail_on_missing:
            raise AttributeError(f"Property '{prop_name}' not found in the input data of type '{type(data)}'")
        return default
    return of_interest
