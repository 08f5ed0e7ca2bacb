from setuptools import setup, find_packages

setup(name="graphcalc",
    version="0.1.0",
    description="Expression compiler and curve sampler for a 2-D graphing calculator",
    license='MIT',
    python_requires=">=3.10",
    install_requires=[
        "ply",
        "numpy"
    ],
    py_modules=[
        "codegen",
        "contour",
        "errors",
        "execute",
        "grapher",
        "lexer",
        "parser",
        "rpn_checker",
        "runtime",
    ],
    packages=find_packages(exclude=["tests", "tests.*"]),
    entry_points={
        "console_scripts": [
            "graphcalc=execute:main",
        ],
    },
    extras_require={
        "plot": ["matplotlib"],
        "dev": ["pytest>=7", "matplotlib"],
    },
)
