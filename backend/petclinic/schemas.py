"""Pydantic form schemas used by the HTML controllers.

Schemas keep submitted form shapes stable and provide validation for
controller handlers and tests.
"""

from datetime import date
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class VisitForm(BaseModel):
    """Fields accepted from the create-visit form.

    The form posts the visit date as `date`; it may be left out, in which
    case the visit keeps its own date. Unknown fields are ignored.
    """
    model_config = ConfigDict(populate_by_name=True, extra='ignore', str_strip_whitespace=True)

    visit_date: Optional[date] = Field(default=None, alias='date')
    description: str = Field(min_length=1, max_length=255)
