from kubeinventory.cli import main

main()
