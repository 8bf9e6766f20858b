from appcompiler.pipeline import main

main()
