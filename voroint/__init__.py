# voroint/__init__.py

import os
import importlib
import warnings
import logging

# Configure logging first
debug = os.environ.get("DEBUG", "0") == "1"
if not logging.getLogger().handlers:
    logging.basicConfig(
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S"
    )

# Set up main package logger
logger = logging.getLogger("voroint")
log_level = logging.DEBUG if debug else logging.INFO
logger.setLevel(log_level)

if debug:
    logger.debug("voroint package initialized in debug mode")

# MDAnalysis is chatty when reading bare coordinate files
warnings.filterwarnings("ignore", category=UserWarning, module="MDAnalysis")
warnings.filterwarnings("ignore", message=".*guesser will only guess empty values.*")
logging.getLogger('MDAnalysis').setLevel(logging.WARNING)

__version__ = "0.1.0"

__all__ = ["logger"]
do_not_import = ["__init__.py"]

# Lazy loading: modules are imported on first access
def __getattr__(name):
    """Lazy import modules on first access."""
    package_dir = os.path.dirname(__file__)
    module_file = f"{name}.py"

    if module_file in do_not_import:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module_path = os.path.join(package_dir, module_file)
    if os.path.exists(module_path):
        module = importlib.import_module(f".{name}", package=__name__)
        globals()[name] = module
        return module

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

# List available modules for introspection
package_dir = os.path.dirname(__file__)
for module in os.listdir(package_dir):
    if module.endswith(".py") and module not in do_not_import:
        module_name = module[:-3]
        __all__.append(module_name)
