from visual_ci.main import run_main

run_main()
