from setuptools import setup, find_packages

setup(
    name="netwatch",
    version="0.2.0",
    description="Real-time network traffic monitor for Unix hosts",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "click>=8.0.0",
        "psutil>=5.9.0",
        "scapy>=2.5.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "netwatch=netwatch_cli.main:cli",
        ],
    },
    include_package_data=True,
    python_requires=">=3.9",
)
