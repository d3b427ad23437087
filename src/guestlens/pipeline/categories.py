"""Category resolver: the cached category list and the active selection.

The backend owns categories; the resolver refetches after every mutation
and never invents records locally except to keep a just-created category
selectable when the refresh that follows it fails.
"""

from __future__ import annotations

from guestlens.backend_api.categories import CategoryAPI
from guestlens.errors import GuestlensCategoryError, GuestlensError, GuestlensValidationError
from guestlens.models import Category
from guestlens.observability import get_logger

log = get_logger("guestlens.categories")


class CategoryResolver:
    """Track the wedding's categories and which one the guest picked.

    Parameters
    ----------
    api:
        The backend :class:`CategoryAPI`.
    """

    def __init__(self, api: CategoryAPI) -> None:
        self._api = api
        self._categories: list[Category] = []
        self._active_id: str | None = None

    @property
    def categories(self) -> list[Category]:
        return list(self._categories)

    @property
    def active_id(self) -> str | None:
        return self._active_id

    def get(self, category_id: str) -> Category | None:
        for category in self._categories:
            if category.category_id == category_id:
                return category
        return None

    def select(self, category_id: str) -> Category:
        """Make *category_id* the active category.

        Raises
        ------
        GuestlensValidationError
            If the id is not in the cached list.
        """
        category = self.get(category_id)
        if category is None:
            raise GuestlensValidationError(
                message=f"Unknown category {category_id!r}",
                context={
                    "field": "category_id",
                    "value": category_id,
                    "reason": "Please choose one of the listed categories.",
                },
            )
        self._active_id = category.category_id
        return category

    async def refresh(self) -> list[Category]:
        """Refetch the category list.

        On failure the previous list is kept (empty on first load) and
        :class:`GuestlensCategoryError` is raised.
        """
        try:
            categories = await self._api.list()
        except GuestlensError as exc:
            log.warning(
                "Could not load categories",
                extra={"extra_fields": {"op": "refresh", "error_code": exc.code, "error": exc.message}},
            )
            raise GuestlensCategoryError(
                message=f"Could not load categories: {exc.message}",
                context={"operation": "refresh"},
                cause=exc,
            ) from exc

        self._categories = categories
        if self._active_id is not None and self.get(self._active_id) is None:
            self._active_id = None
        return self.categories

    async def create(self, name: str) -> str:
        """Create a category and make it active.

        Returns
        -------
        str
            The new category's identifier.

        Raises
        ------
        GuestlensValidationError
            If *name* is blank (no request is sent).
        GuestlensCategoryError
            If the backend call fails.
        """
        trimmed = name.strip()
        if not trimmed:
            raise GuestlensValidationError(
                message="Category name must not be empty",
                context={"field": "name", "value": name, "reason": "Enter a name for the category."},
            )

        try:
            new_id = await self._api.create(trimmed)
        except GuestlensError as exc:
            raise GuestlensCategoryError(
                message=f"Could not create category {trimmed!r}: {exc.message}",
                context={"operation": "create", "name": trimmed},
                cause=exc,
            ) from exc

        log.info(
            "Category created",
            extra={"extra_fields": {"category_id": new_id, "name": trimmed}},
        )

        try:
            await self.refresh()
        except GuestlensCategoryError:
            if self.get(new_id) is None:
                self._categories.append(Category(category_id=new_id, name=trimmed))
        self._active_id = new_id
        return new_id
