from setuptools import setup, find_packages

def read_requirements():
    with open('requirements.txt') as req:
        content = req.read()
        requirements = content.split('\n')
    # Filter out comments and empty lines
    return [req for req in requirements if req and not req.startswith('#')]

setup(
    name='storefront_checkout',
    version='0.1.0',
    packages=find_packages(exclude=["tests*"]), # Automatically find packages
    py_modules=['worker'],
    include_package_data=True,
    install_requires=read_requirements(),
    extras_require={
        'test': [
            'pytest>=7.4.0',
            'pytest-asyncio>=0.21.0',
        ],
    },
    description='Storefront checkout and payment service using FastAPI and Temporal',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
        "Framework :: FastAPI",
    ],
    python_requires='>=3.10',
)
