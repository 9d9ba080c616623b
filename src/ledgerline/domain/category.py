"""Category domain service."""

from typing import Optional
from ledgerline.database.base import Database
from ledgerline.domain.entities import Category as CategoryEntity
from ledgerline.domain.errors import ConflictError, NotFoundError, ValidationError, category_not_found


class CategoryService:
    """Service for managing categories."""

    def __init__(self, db: Database):
        """Initialize category service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_category(self, name: str, parent_path: Optional[str] = None) -> int:
        """Create a category.

        Args:
            name: Category name
            parent_path: Optional parent category path (e.g., "Food & Dining")

        Returns:
            Category ID

        Raises:
            ValidationError: If the name is empty or contains '>'
            NotFoundError: If parent category doesn't exist
            ConflictError: If the category already exists under that parent
        """
        name = name.strip()
        if not name:
            raise ValidationError("Category name is required")
        if ">" in name:
            raise ValidationError("Category name cannot contain '>'")

        parent_id = None
        if parent_path is not None:
            parent = self.db.get_category_by_path(parent_path)
            if parent is None:
                raise NotFoundError(f"Parent category '{parent_path}' not found")
            parent_id = parent.id

        full_path = f"{parent_path} > {name}" if parent_path else name
        if self.db.get_category_by_path(full_path) is not None:
            raise ConflictError(f"Category '{full_path}' already exists")

        return self.db.create_category(name=name, parent_id=parent_id)

    def get_category(self, category_id: int) -> Optional[CategoryEntity]:
        """Get category by ID.

        Args:
            category_id: Category ID

        Returns:
            Category entity or None if not found
        """
        return self.db.get_category(category_id)

    def get_category_by_path(self, path: str) -> Optional[CategoryEntity]:
        """Get category by path.

        Args:
            path: Category path (e.g., "Food & Dining > Groceries")

        Returns:
            Category entity or None if not found
        """
        return self.db.get_category_by_path(path)

    def require_category(self, path: str) -> CategoryEntity:
        """Resolve a live category by path.

        Raises:
            NotFoundError: If the path does not name an active category
        """
        category = self.db.get_category_by_path(path)
        if category is None or category.is_archived:
            raise NotFoundError(f"Category '{path}' not found")
        return category

    def list_categories(self, include_archived: bool = False) -> list[CategoryEntity]:
        """List categories.

        Returns:
            List of category entities ordered by name
        """
        return self.db.list_categories(include_archived=include_archived)

    def archive_category(self, category_id: int) -> None:
        """Archive a category. Transactions keep referencing it.

        Raises:
            NotFoundError: If category not found
        """
        if self.db.get_category(category_id) is None:
            raise NotFoundError(category_not_found(category_id))
        self.db.delete_category(category_id)

    def format_category_path(self, category_id: int) -> str:
        """Get full path for a category.

        Args:
            category_id: Category ID

        Returns:
            Full category path (e.g., "Food & Dining > Groceries")
        """
        cat = self.get_category(category_id)
        if cat is None:
            return ""

        path_parts = [cat.name]
        current_parent_id = cat.parent_id

        while current_parent_id is not None:
            parent = self.get_category(current_parent_id)
            if parent is None:
                break
            path_parts.append(parent.name)
            current_parent_id = parent.parent_id

        return " > ".join(reversed(path_parts))
