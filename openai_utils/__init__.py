"""OpenAI Responses integration for the chart query service.

* :mod:`openai_utils.client` - the two call modes behind :class:`ChartLLM`.
* :mod:`openai_utils.files` - data file upload and its single-flight cache.
* :mod:`openai_utils.schemas` - ``text.format`` payloads.
* :mod:`openai_utils.server` - FastAPI route for the dashboard.
"""

from __future__ import annotations

from .client import ChartLLM as ChartLLM  # noqa: F401
from .client import OpenAIChartLLM as OpenAIChartLLM  # noqa: F401
from .files import FileReference as FileReference  # noqa: F401
from .files import FileReferenceCache as FileReferenceCache  # noqa: F401

__all__ = ["ChartLLM", "FileReference", "FileReferenceCache", "OpenAIChartLLM"]
