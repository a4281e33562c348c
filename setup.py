# ReEzTransfer/setup.py
from setuptools import find_namespace_packages, setup

setup(
    name="eztransfer",
    version="0.1.0",
    description="Tiled arbitrary style transfer for photos larger than the model input.",
    packages=find_namespace_packages(include=["eztransfer", "eztransfer.*"]),
    py_modules=["run"],
    python_requires=">=3.8",
    install_requires=[
        "numpy",
        "torch",
        "opencv-python",
        "imageio",
        "Pillow",
        "pydantic>=2",
        "PyYAML",
        "tqdm",
    ],
    extras_require={
        "test": ["pytest"],
    },
)
