"""Default settings for the Voronoi interface pipeline"""
import os

# External tessellation program; VOROINT_TOOL overrides the executable
TOOL = os.environ.get("VOROINT_TOOL", "voro_interfaces++")
# Read coordinates from stdin, write to stdout, print summed interface areas
TOOL_FLAGS = ("-stdin", "-stdout", "-sum")
# The tool still expects a file name argument after the box bounds
OUTPUT_PLACEHOLDER = "file_name_placeholder"

# GROMACS coordinates are in nm, the tool expects Angstrom
DIMENSION_SCALING = 10.0
COORD_DECIMALS = 6
# Absolute tolerance (nm) when deciding whether a box is cubic
BOX_ATOL = 1e-6

# Seconds to wait for one tool invocation, None waits forever
TIMEOUT = 600.0

# Largest piece of tool stdout held in memory at once (characters)
READ_CHUNK = 65536
