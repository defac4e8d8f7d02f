"""
rtclassify setup.py

rtclassifyパッケージのインストール設定
"""

from setuptools import setup, find_packages

# READMEファイルを読み込み


def read_readme():
    with open('README.md', 'r', encoding='utf-8') as f:
        return f.read()

# requirements.txtを読み込み


def read_requirements():
    with open('requirements.txt', 'r', encoding='utf-8') as f:
        return [line.strip() for line in f.readlines()
                if line.strip() and not line.startswith('#')]


setup(
    name='rtclassify',
    version='0.1.0',
    author='rtclassify Team',
    author_email='rtclassify@example.com',
    description='TensorRT image classification with per-layer profiling',
    long_description=read_readme(),
    long_description_content_type='text/markdown',
    packages=find_packages(include=['rtclassify', 'rtclassify.*']),
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'Intended Audience :: Science/Research',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Topic :: Scientific/Engineering :: Artificial Intelligence',
    ],
    keywords='tensorrt, inference, profiling, image classification',
    python_requires='>=3.10',
    install_requires=read_requirements(),
    extras_require={
        'tensorrt': [
            'tensorrt',
        ],
        'dev': [
            'pytest>=6.0.0',
            'Pillow>=9.0.0',
            'flake8>=3.8.0',
            'black>=21.0.0',
            'isort>=5.8.0',
            'pydocstyle>=6.0.0',
            'pre-commit>=2.12.0'
        ]
    },
    entry_points={
        'console_scripts': [
            'rtclassify=rtclassify.cli.main:main',
        ],
    },
    include_package_data=True,
    zip_safe=False,
)
