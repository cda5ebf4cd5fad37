"""
Content component - Inline-editable page content and page registry.
"""

from ._impl import InMemoryContentBlockRepo, InMemoryPageRepo
from .component import (
    DEFAULT_CONFIG,
    ContentConfig,
    run_delete_block,
    run_get_page_content,
    run_list_pages,
    run_upsert_block,
    run_upsert_page,
    validate_block,
    validate_page,
)
from .models import (
    CONTENT_TYPES,
    BlockOutput,
    ContentBlock,
    ContentValidationError,
    DeleteBlockInput,
    DeleteBlockOutput,
    GetPageContentInput,
    ListPagesInput,
    ListPagesOutput,
    Page,
    PageContentOutput,
    PageOutput,
    UpsertBlockInput,
    UpsertPageInput,
)
from .ports import ContentBlockRepoPort, PageRepoPort, TimePort

__all__ = [
    # Entry points
    "run_delete_block",
    "run_get_page_content",
    "run_list_pages",
    "run_upsert_block",
    "run_upsert_page",
    # Validation
    "DEFAULT_CONFIG",
    "ContentConfig",
    "validate_block",
    "validate_page",
    # Models
    "CONTENT_TYPES",
    "BlockOutput",
    "ContentBlock",
    "ContentValidationError",
    "DeleteBlockInput",
    "DeleteBlockOutput",
    "GetPageContentInput",
    "ListPagesInput",
    "ListPagesOutput",
    "Page",
    "PageContentOutput",
    "PageOutput",
    "UpsertBlockInput",
    "UpsertPageInput",
    # Ports
    "ContentBlockRepoPort",
    "PageRepoPort",
    "TimePort",
    # In-memory
    "InMemoryContentBlockRepo",
    "InMemoryPageRepo",
]
