# -'- coding: utf-8 -'-
from .cli import main

raise SystemExit(main())
