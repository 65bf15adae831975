from qfs.qfs import main

main()
