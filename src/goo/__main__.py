from goo.cli import main

raise SystemExit(main())
