"""wpclone file utils core classes."""
import os
import shutil

from wpc.core.logging import Log


class WPCFileUtils():
    """Utilities to operate on files"""
    def __init__():
        pass

    def copyfiles(self, src, dest):
        """
        Copies the directory tree ``src`` into ``dest``.
        Existing files in ``dest`` are replaced, other entries are kept.
        Dotfiles are copied as any other file, symlinks stay symlinks.
        """
        try:
            Log.debug(self, "Copying files, Source:{0}, Dest:{1}"
                      .format(src, dest))
            shutil.copytree(src, dest, symlinks=True, dirs_exist_ok=True)
        except shutil.Error as e:
            Log.debug(self, "{0}".format(e))
            Log.error(self, 'Unable to copy files from {0} to {1}'
                      .format(src, dest))
        except OSError as e:
            Log.debug(self, "{0}".format(e.strerror))
            Log.error(self, 'Unable to copy files from {0} to {1}'
                      .format(src, dest))

    def copyfile(self, src, dest):
        """
        Copy a single file, keeping its metadata.
        """
        try:
            Log.debug(self, "Copying file, Source:{0}, Dest:{1}"
                      .format(src, dest))
            shutil.copy2(src, dest)
        except OSError as e:
            Log.debug(self, "{0}".format(e.strerror))
            Log.error(self, "Unable to copy file from {0} to {1}"
                      .format(src, dest))

    def chown(self, path, user, group, recursive=False):
        """
            Change Owner for files
            change owner for file with path specified
            user: username of owner
            group: group of owner
            recursive: if recursive is True change owner for all
                       files in directory
        """
        try:
            Log.debug(self, "Changing ownership of {0}, {1}:{2}"
                      .format(path, user, group))
            # Change inside files/directory ownership only if recursive
            # flag is set
            if recursive:
                for root, dirs, files in os.walk(path):
                    for d in dirs:
                        dpath = os.path.join(root, d)
                        if not os.path.islink(dpath):
                            shutil.chown(dpath, user, group)
                    for f in files:
                        fpath = os.path.join(root, f)
                        if not os.path.islink(fpath):
                            shutil.chown(fpath, user, group)
            shutil.chown(path, user, group)
        except (OSError, LookupError) as e:
            Log.debug(self, "{0}".format(e))
            Log.error(self, "Unable to change owner : {0} ".format(path))

    def chmod(self, path, perm, recursive=False):
        """
            Changes Permission for files
            path : file path permission to be changed
            perm : permissions to be given
            recursive: change permission recursively for all files
        """
        try:
            Log.debug(self, "Changing permission of {0}, Perm:{1:o}"
                      .format(path, perm))
            if recursive:
                for root, dirs, files in os.walk(path):
                    for d in dirs:
                        dpath = os.path.join(root, d)
                        if not os.path.islink(dpath):
                            os.chmod(dpath, perm)
                    for f in files:
                        fpath = os.path.join(root, f)
                        if not os.path.islink(fpath):
                            os.chmod(fpath, perm)
            os.chmod(path, perm)
        except OSError as e:
            Log.debug(self, "{0}".format(e.strerror))
            Log.error(self, "Unable to change permission : {0}".format(path))

    def normalize_modes(self, path, dir_perm, file_perm):
        """
            Set ``dir_perm`` on every directory and ``file_perm`` on every
            regular file below ``path`` (``path`` itself included)
        """
        try:
            Log.debug(self, "Normalizing modes under {0} (dirs {1:o}, "
                      "files {2:o})".format(path, dir_perm, file_perm))
            os.chmod(path, dir_perm)
            for root, dirs, files in os.walk(path):
                for d in dirs:
                    dpath = os.path.join(root, d)
                    if not os.path.islink(dpath):
                        os.chmod(dpath, dir_perm)
                for f in files:
                    fpath = os.path.join(root, f)
                    if not os.path.islink(fpath):
                        os.chmod(fpath, file_perm)
        except OSError as e:
            Log.debug(self, "{0}".format(e.strerror))
            Log.error(self, "Unable to change permission : {0}".format(path))

    def rm(self, path):
        """
            Remove files
        """
        Log.debug(self, "Removing {0}".format(path))
        if WPCFileUtils.isexist(self, path):
            try:
                if os.path.isdir(path):
                    shutil.rmtree(path)
                else:
                    os.remove(path)
            except OSError as e:
                Log.debug(self, "{0}".format(e.strerror))
                Log.error(self, "Unable to remove file  : {0} "
                          .format(path))

    def isexist(self, path):
        """
            Check if file exist on given path
        """
        try:
            if os.path.exists(path):
                return True
            else:
                return False
        except OSError as e:
            Log.debug(self, "{0}".format(e.strerror))
            Log.error(self, "Unable to check path {0}".format(path))

    def write(self, path, content, perm=None):
        """
            Write ``content`` to ``path``, replacing the file
        """
        try:
            Log.debug(self, "Writing {0}".format(path))
            with open(path, 'w', encoding='utf-8',
                      errors='surrogateescape') as f:
                f.write(content)
            if perm is not None:
                os.chmod(path, perm)
        except OSError as e:
            Log.debug(self, "{0}".format(e.strerror))
            Log.error(self, "Unable to write file : {0}".format(path))
