from setuptools import setup, find_packages

setup(
    name="p4-trpt",
    version="0.1.0",
    description="Decoder for P4 INT Telemetry Report UDP payloads",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "click>=8.0.0",
        "scapy>=2.5.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "p4trpt=p4trpt_cli.main:cli",
        ],
    },
    python_requires=">=3.8",
)
