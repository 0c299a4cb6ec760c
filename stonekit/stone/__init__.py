"""Reading and writing of .stone archive containers."""