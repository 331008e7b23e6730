# Importing the package registers the built-in export extractors
from . import linkedin_export  # noqa: F401
