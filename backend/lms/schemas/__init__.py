"""Pydantic schemas for the LMS API."""

from lms.schemas.customer import *
from lms.schemas.property import *
from lms.schemas.tax import *
from lms.schemas.workflow import *
from lms.schemas.notification import *
from lms.schemas.logs import *
