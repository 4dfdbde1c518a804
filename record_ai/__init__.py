"""Record AI orchestration service.

Turns a recorded performance review into text, tidied or summarized prose and an
illustration, by sequencing calls to external speech-to-text, chat and image
providers.
"""

__version__ = "1.0.0"
