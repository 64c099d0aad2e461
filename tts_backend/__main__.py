from tts_backend.cli import main

raise SystemExit(main())
