"""
firepush/models/document.py

Type aliases for the JSON-like values a document is made of.

A document is a string-keyed mapping whose values are one of:
null, string, number (int or float), boolean, a list of values, or a nested mapping.
"""

from typing import Dict, List, Union

DocumentValue = Union[
    None,
    str,
    bool,
    int,
    float,
    List["DocumentValue"],
    Dict[str, "DocumentValue"],
]

Document = Dict[str, DocumentValue]

__all__ = ["DocumentValue", "Document"]
