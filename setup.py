#!python

import os.path, sys
from setuptools import setup, find_packages

sys.path.insert(0, os.path.abspath("src"))
from embedstore import versionstring


if __name__ == "__main__":
    setup(
        name="embedstore",
        version=versionstring(),
        package_dir={'': 'src'},
        packages=find_packages("src"),

        author="Embedstore Contributors",

        description="Store text embeddings in Redis or ChromaDB and query their nearest neighbors.",
        long_description=open("README.md").read(),
        long_description_content_type="text/markdown",

        license="Two-clause BSD license",
        keywords="embeddings vector knn redis chroma ollama",

        zip_safe=True,
        python_requires=">=3.8",
        install_requires=['numpy'],
        extras_require={
            'redis': [
                'redis>=4.6',  # For RedisVectorClient
            ],
            'chroma': [
                'chromadb',  # For ChromaVectorClient
            ],
            'ollama': [
                'httpx',  # For OllamaEmbedder
            ],
            'all': [
                'redis>=4.6',
                'chromadb',
                'httpx',
            ],
            'test': [
                'pytest',
                'redis>=4.6',
                'chromadb',
                'httpx',
            ],
        },
        entry_points={
            'console_scripts': [
                'embedstore = embedstore.cli:main',
            ],
        },

        classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: BSD License",
        "Natural Language :: English",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Topic :: Database",
        "Topic :: Software Development :: Libraries :: Python Modules",
        ],
    )
