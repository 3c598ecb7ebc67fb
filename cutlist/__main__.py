from cutlist.cli import main

main()
