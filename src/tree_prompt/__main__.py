from tree_prompt.cli import main

raise SystemExit(main())
