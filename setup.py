from setuptools import setup, find_packages


setup(
    name="btxz",
    version="2.0.0",
    packages=find_packages(include=["btxz", "btxz.*"]),
    description="Single-file secure archives: compressed, AES-256-GCM sealed, Argon2id keyed, versioned headers.",
    author="btxz contributors",
    python_requires=">=3.8",
    install_requires=[
        "pycryptodomex>=3.23.0",
        "argon2-cffi>=23.1.0",
        "zstandard>=0.22.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "btxz=btxz.cli:main",
        ]
    },
)
