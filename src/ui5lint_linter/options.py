from typing import List, Optional

from pydantic import BaseModel, Field

from .sorting import MessageOrder


class LinterOptions(BaseModel):
    """Run-wide configuration, fixed for the lifetime of one linter context"""

    report_coverage: bool = False
    include_message_details: bool = False
    select: List[str] = Field(default_factory=lambda: ["all"])
    ignore: List[str] = Field(default_factory=list)
    jobs: int = Field(default=4, ge=1)
    file_timeout: Optional[float] = Field(default=None, gt=0)  # seconds per file
    message_order: MessageOrder = MessageOrder.FATAL_LAST
    catalog_path: Optional[str] = None
