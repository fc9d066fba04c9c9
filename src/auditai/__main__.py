from auditai.cli import main

main()
