from setuptools import setup, find_packages
import re

# Read version from payledger/__init__.py
with open('payledger/__init__.py') as f:
    version = re.search(r'^__version__ = ["\']([^"\']+)["\']', f.read(), re.MULTILINE).group(1)

setup(
    name='payledger',
    version=version,
    packages=find_packages(include=['payledger', 'payledger.*']),
    install_requires=[
        'PyYAML>=6.0',
        'click>=8.0',
        'pydantic>=2.0.0',
        'rich>=13.0',
    ],
    extras_require={
        'mcp': [
            'mcp[cli]>=1.0.0,<2',
        ],
        'test': [
            'pytest>=7.0',
            'hypothesis>=6.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'pay-ledger=payledger.cli.__main__:main',
            'pay-ledger-mcp=payledger.mcp.server:run_server',
        ],
    },
    author='Personal',
    description='Payroll ledger: rate history, daily records and two-party account reconciliation.',
    python_requires='>=3.10',
)
