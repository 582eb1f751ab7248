from smartdc.cli import main

raise SystemExit(main())
