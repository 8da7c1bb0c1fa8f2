from brown_ham_mc.cli import main

if __name__ == "__main__":
    main()
