from setuptools import setup, find_packages

setup(
    name="voroint",
    version="0.1.0",
    description="Frame-by-frame Voronoi interface areas of MD trajectories via voro_interfaces++",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "numpy",
        "MDAnalysis>=2.0",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": ["voroint=voroint.cli:main"],
    },
)
