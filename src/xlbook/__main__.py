from xlbook.cli import main

main()
