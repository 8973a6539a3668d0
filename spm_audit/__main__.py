from spm_audit.cli import main

main()
