"""Register catalog types and loaders.

The catalog itself is data: it is loaded from JSON definition files with
:func:`load_catalog` and then used read-only.
"""

from pyvictron.registers.definitions import (
    WORD_COUNTS,
    DataType,
    RegisterCategory,
    RegisterDefinition,
    words_required,
)
from pyvictron.registers.loader import (
    categories_from_dict,
    category_from_dict,
    find_category,
    load_catalog,
    load_catalogs,
    register_from_dict,
)

__all__ = [
    "DataType",
    "RegisterCategory",
    "RegisterDefinition",
    "WORD_COUNTS",
    "categories_from_dict",
    "category_from_dict",
    "find_category",
    "load_catalog",
    "load_catalogs",
    "register_from_dict",
    "words_required",
]
