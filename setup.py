from setuptools import setup, find_packages

setup(
   name="schema2crud",
   version="1.0.0",
   package_dir={"": "src"},
   packages=find_packages(where="src"),
   include_package_data=True,
   python_requires=">=3.10",
   install_requires=[
      "fastapi>=0.100",
      "pydantic>=2.0",
      "motor>=3.0",
      "pymongo>=4.0",
      "PyYAML>=6.0",
      "uvicorn>=0.20",
   ],
   extras_require={
      "test": [
         "pytest>=7.0",
         "pytest-asyncio>=0.21",
         "httpx>=0.24",
      ],
   },
   entry_points={
      "console_scripts": [
         "schema2crud=schema2crud.main:main",
      ],
   },
)
