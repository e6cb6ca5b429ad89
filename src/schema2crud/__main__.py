import sys

from schema2crud.main import main

if __name__ == "__main__":
    sys.exit(main())
