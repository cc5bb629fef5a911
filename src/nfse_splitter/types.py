"""
Discovery helper for classification categories.

Provides user-facing labels and descriptions for the three categories, used
by the batch script and by callers building their own presentation layer.
"""

from typing import Dict, Union

from nfse_splitter.models import Category


_TITLES: Dict[Category, str] = {
    Category.TOMADOR: 'ISS - Tomador',
    Category.PRESTADOR: 'ISS - Prestador',
    Category.SEM_CATEGORIA: 'Sem Categoria',
}

_DESCRIPTIONS: Dict[Category, str] = {
    Category.TOMADOR: 'Notas com ISS a recolher pelo Tomador',
    Category.PRESTADOR: 'Notas com ISS a recolher pelo Prestador',
    Category.SEM_CATEGORIA: 'Notas sem a tag configurada ou com valor não reconhecido',
}


class Categories:
    """
    Helper class for discovering category labels.

    All methods return copies to prevent accidental mutations.

    Example:
        >>> Categories.list_available()
        {'tomador': 'ISS - Tomador', 'prestador': 'ISS - Prestador', 'sem_categoria': 'Sem Categoria'}
        >>> Categories.is_valid('tomador')
        True
    """

    @staticmethod
    def list_available() -> Dict[str, str]:
        """Category value -> display title, in canonical order."""
        return {category.value: _TITLES[category] for category in Category}

    @staticmethod
    def get_title(category: Union[Category, str]) -> str:
        """
        Display title for a category.

        Raises:
            ValueError: If category is unknown
        """
        return _TITLES[Category(category)]

    @staticmethod
    def get_description(category: Union[Category, str]) -> str:
        """
        Longer description for a category.

        Raises:
            ValueError: If category is unknown
        """
        return _DESCRIPTIONS[Category(category)]

    @staticmethod
    def is_valid(value: str) -> bool:
        """True if value is one of the three category labels."""
        return value in {category.value for category in Category}
